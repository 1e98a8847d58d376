"""Health subsystem — data model, environment, check registry, checker."""

from .base import EarlyBootHealthcheck, Healthcheck, HealthcheckRegistry, Lifecycle
from .checker import HealthChecker
from .configuration import HealthcheckConfiguration, HealthcheckDef, sort_by_position
from .environment import (
    ApplicationContext,
    CliEnvironment,
    HealthcheckEnvironment,
    WebEnvironment,
    resolve_invocation_hint,
)
from .errors import ConfigurationError
from .models import Health, HealthCollection, InvalidHealthPayload, Status
