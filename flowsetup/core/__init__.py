from flowsetup.core.bootstrap import Bootstrap, ServiceContainer
from flowsetup.core.phases import COMPILETIME, RUNTIME, cli_environment, run_phase, web_environment

__all__ = [
    "COMPILETIME",
    "RUNTIME",
    "Bootstrap",
    "ServiceContainer",
    "cli_environment",
    "run_phase",
    "web_environment",
]
