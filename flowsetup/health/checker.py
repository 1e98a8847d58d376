"""HealthChecker — runs configured checks in position order.

Checks run sequentially: a later check may rely on an earlier one (migrations
need a working database connection). Once an entry has status ERROR, the
remaining checks are recorded as NOT_RUN without being executed.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .base import Healthcheck, HealthcheckRegistry, instantiate
from .configuration import HealthcheckDef, sort_by_position
from .errors import ConfigurationError
from .environment import HealthcheckEnvironment, replace_command_placeholders
from .models import Health, HealthCollection, Status
from .throwables import store_throwable

if TYPE_CHECKING:
    from flowsetup.core.bootstrap import Bootstrap

logger = logging.getLogger(__name__)


class HealthChecker:
    """Executes one pass of configured health checks."""

    def __init__(
        self,
        bootstrap: Bootstrap,
        configuration: list[HealthcheckDef],
        environment: HealthcheckEnvironment,
        registry: HealthcheckRegistry | None = None,
        exception_log_dir: Path | None = None,
    ) -> None:
        if registry is None:
            from .checks import default_registry
            registry = default_registry()
        self.bootstrap = bootstrap
        self.configuration = configuration
        self.environment = environment
        self.registry = registry
        self.exception_log_dir = exception_log_dir

    def execute(self) -> HealthCollection:
        prepared = self._prepare()

        collection = HealthCollection.empty()
        for identifier, healthcheck in prepared:
            if collection.has_error():
                health = Health(healthcheck.get_title(), "", Status.NOT_RUN)
            else:
                health = self._run(identifier, healthcheck)

            collection = collection.with_entry(identifier, health)
            logger.debug("Healthcheck %s: %s", identifier, health.status.value)

        return collection

    def _prepare(self) -> list[tuple[str, Healthcheck]]:
        # Resolve and build everything first: a configuration error must abort
        # the pass before any check has run.
        definitions = [d for d in sort_by_position(self.configuration) if d.class_name]

        seen: set[str] = set()
        for definition in definitions:
            if definition.identifier in seen:
                raise ConfigurationError(
                    f"Healthcheck '{definition.identifier}' is configured more than once"
                )
            seen.add(definition.identifier)

        resolved = [
            (definition.identifier, self.registry.resolve(definition.class_name))
            for definition in definitions
        ]
        return [
            (identifier, instantiate(check_cls, self.bootstrap))
            for identifier, check_cls in resolved
        ]

    def _run(self, identifier: str, healthcheck: Healthcheck) -> Health:
        title = healthcheck.get_title()
        try:
            health = healthcheck.execute(self.environment)
        except Exception as e:
            reference = store_throwable(e, self.exception_log_dir)
            logger.exception("Healthcheck %s failed (reference %s)", identifier, reference)
            return Health(title, self._failure_message(e, reference), Status.ERROR)

        if not health.title:
            health = health.with_title(title)
        return health.with_message(
            replace_command_placeholders(
                health.message,
                self.environment.is_windows,
                command=self.bootstrap.settings.command_name,
            )
        )

    def _failure_message(self, exc: Exception, reference: str) -> str:
        message = (
            "The healthcheck could not be executed. "
            f"See the server log for reference <code>{reference}</code>."
        )
        if self.environment.is_safe_to_leak_technical_details():
            message += f"<br />{type(exc).__name__}: {exc}"
        return message
