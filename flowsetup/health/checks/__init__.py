"""Built-in health checks and the default registry."""

from flowsetup.health.base import HealthcheckRegistry

from .basic import BasicRequirementsHealthcheck
from .database import DatabaseHealthcheck
from .end_to_end import EndToEndHealthcheck
from .migrations import MigrationsHealthcheck, MigrationStatusService
from .proxies import TrustedProxiesHealthcheck

BUILTIN_CHECKS = {
    "basicRequirements": BasicRequirementsHealthcheck,
    "database": DatabaseHealthcheck,
    "endToEnd": EndToEndHealthcheck,
    "migrations": MigrationsHealthcheck,
    "trustedProxies": TrustedProxiesHealthcheck,
}


def default_registry() -> HealthcheckRegistry:
    return HealthcheckRegistry(BUILTIN_CHECKS)


__all__ = [
    "BUILTIN_CHECKS",
    "BasicRequirementsHealthcheck",
    "DatabaseHealthcheck",
    "EndToEndHealthcheck",
    "MigrationStatusService",
    "MigrationsHealthcheck",
    "TrustedProxiesHealthcheck",
    "default_registry",
]
