from __future__ import annotations

from typing import TYPE_CHECKING

from flowsetup.health.base import EarlyBootHealthcheck
from flowsetup.health.environment import HealthcheckEnvironment
from flowsetup.health.models import Health, Status

if TYPE_CHECKING:
    from flowsetup.core.bootstrap import Bootstrap


class EndToEndHealthcheck(EarlyBootHealthcheck):
    """Reaching this check means the runtime stage booted."""

    @classmethod
    def from_bootstrap(cls, bootstrap: Bootstrap) -> EndToEndHealthcheck:
        return cls()

    def get_title(self) -> str:
        return "End to end"

    def execute(self, environment: HealthcheckEnvironment) -> Health:
        return Health("", "Flow is up and running.", Status.OK)
