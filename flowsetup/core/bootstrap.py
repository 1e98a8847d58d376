"""Bootstrap handle and service container.

Early-boot checks receive the Bootstrap directly; deferred checks are
resolved from the container, which is only built on first access.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from flowsetup.config import Settings, settings as default_settings
from flowsetup.health.environment import ApplicationContext
from flowsetup.health.errors import ServiceNotFound

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ServiceContainer:
    """Minimal singleton container keyed by type."""

    def __init__(self) -> None:
        self._factories: dict[type, Callable[[ServiceContainer], Any]] = {}
        self._instances: dict[type, Any] = {}

    def set_factory(self, service_type: type[T], factory: Callable[[ServiceContainer], T]) -> None:
        self._factories[service_type] = factory
        self._instances.pop(service_type, None)

    def set_instance(self, service_type: type[T], instance: T) -> None:
        self._instances[service_type] = instance

    def has(self, service_type: type) -> bool:
        return service_type in self._instances or service_type in self._factories

    def get(self, service_type: type[T]) -> T:
        if service_type in self._instances:
            return self._instances[service_type]

        factory = self._factories.get(service_type)
        if factory is not None:
            instance = factory(self)
        else:
            try:
                instance = service_type()
            except TypeError as e:
                raise ServiceNotFound(
                    f"No factory registered for {service_type.__name__} "
                    f"and it cannot be constructed without arguments"
                ) from e

        self._instances[service_type] = instance
        return instance


class Bootstrap:
    """Low-level handle available before the container is booted."""

    def __init__(
        self,
        settings: Settings,
        context: ApplicationContext | None = None,
        container_factory: Callable[[Bootstrap], ServiceContainer] | None = None,
    ) -> None:
        self.settings = settings
        self.context = context or ApplicationContext(settings.flow_context)
        self._container_factory = container_factory or _default_container
        self._container: ServiceContainer | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> Bootstrap:
        return cls(settings or default_settings)

    @property
    def container(self) -> ServiceContainer:
        if self._container is None:
            logger.debug("Booting service container (context=%s)", self.context)
            self._container = self._container_factory(self)
        return self._container

    @property
    def is_booted(self) -> bool:
        return self._container is not None


def _default_container(bootstrap: Bootstrap) -> ServiceContainer:
    from flowsetup.health.checks.migrations import MigrationStatusService

    container = ServiceContainer()
    container.set_instance(Settings, bootstrap.settings)
    container.set_instance(ApplicationContext, bootstrap.context)
    container.set_instance(Bootstrap, bootstrap)
    container.set_factory(
        MigrationStatusService,
        lambda c: MigrationStatusService.from_settings(c.get(Settings)),
    )
    return container
