"""Glue between the transports and the HealthChecker.

The CLI and the HTTP dashboard both build an explicit environment and run one
configured phase (``compiletime`` or ``runtime``) through here.
"""

from __future__ import annotations

import logging

from flowsetup.core.bootstrap import Bootstrap
from flowsetup.health.base import HealthcheckRegistry
from flowsetup.health.checker import HealthChecker
from flowsetup.health.configuration import HealthcheckConfiguration
from flowsetup.health.environment import (
    CliEnvironment,
    HealthcheckEnvironment,
    WebEnvironment,
    is_windows_platform,
)
from flowsetup.health.models import HealthCollection

logger = logging.getLogger(__name__)

COMPILETIME = "compiletime"
RUNTIME = "runtime"


def load_configuration(bootstrap: Bootstrap) -> HealthcheckConfiguration:
    settings = bootstrap.settings
    return HealthcheckConfiguration.load(settings.resolve_path(settings.healthchecks_file))


def cli_environment(bootstrap: Bootstrap) -> HealthcheckEnvironment:
    return HealthcheckEnvironment(
        application_context=bootstrap.context,
        execution_environment=CliEnvironment(is_windows=is_windows_platform()),
    )


def web_environment(
    bootstrap: Bootstrap,
    request_uri: str,
    headers: dict[str, str] | None = None,
    remote_addr: str | None = None,
) -> HealthcheckEnvironment:
    return HealthcheckEnvironment(
        application_context=bootstrap.context,
        execution_environment=WebEnvironment(
            request_uri=request_uri,
            is_windows=is_windows_platform(),
            headers=dict(headers or {}),
            remote_addr=remote_addr,
        ),
    )


def run_phase(
    bootstrap: Bootstrap,
    phase: str,
    environment: HealthcheckEnvironment,
    configuration: HealthcheckConfiguration | None = None,
    registry: HealthcheckRegistry | None = None,
) -> HealthCollection:
    """Run every check configured for ``phase``; raises ConfigurationError on bad config."""
    configuration = configuration or load_configuration(bootstrap)
    settings = bootstrap.settings
    log_dir = settings.resolve_path(settings.exception_log_dir) if settings.exception_log_dir else None

    checker = HealthChecker(
        bootstrap,
        configuration.for_phase(phase),
        environment,
        registry=registry,
        exception_log_dir=log_dir,
    )
    collection = checker.execute()
    logger.info(
        "Ran %s healthchecks: %d entries, error=%s",
        phase, len(collection), collection.has_error(),
    )
    return collection
