"""Health-check capability and the typed check registry.

Configuration refers to checks by name (``className``). The registry maps each
name to a check class and validates the capability when the class is
registered, so a bad entry is a configuration error rather than a type error
somewhere in the middle of a pass.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any

from .errors import ConfigurationError
from .environment import HealthcheckEnvironment
from .models import Health

if TYPE_CHECKING:
    from flowsetup.core.bootstrap import Bootstrap, ServiceContainer

logger = logging.getLogger(__name__)


class Lifecycle(str, Enum):
    EARLY_BOOT = "early_boot"  # built from the bootstrap handle
    DEFERRED = "deferred"  # resolved from the fully booted container


class Healthcheck(ABC):
    """A single probe returning a Health outcome for one concern."""

    lifecycle = Lifecycle.DEFERRED

    @abstractmethod
    def get_title(self) -> str: ...

    @abstractmethod
    def execute(self, environment: HealthcheckEnvironment) -> Health: ...

    @classmethod
    def from_container(cls, container: ServiceContainer) -> Healthcheck:
        return container.get(cls)


class EarlyBootHealthcheck(Healthcheck):
    """A check that runs before the service container is initialized."""

    lifecycle = Lifecycle.EARLY_BOOT

    @classmethod
    @abstractmethod
    def from_bootstrap(cls, bootstrap: Bootstrap) -> EarlyBootHealthcheck: ...


def instantiate(check_cls: type[Healthcheck], bootstrap: Bootstrap) -> Healthcheck:
    """Build a check through its lifecycle-appropriate factory.

    A factory that cannot build the check (missing service, constructor
    arguments it cannot satisfy) is a configuration error.
    """
    try:
        if check_cls.lifecycle is Lifecycle.EARLY_BOOT:
            return check_cls.from_bootstrap(bootstrap)  # type: ignore[attr-defined]
        return check_cls.from_container(bootstrap.container)
    except ConfigurationError:
        raise
    except TypeError as e:
        raise ConfigurationError(f"Healthcheck {check_cls.__name__} cannot be built: {e}") from e


# ── Registry ─────────────────────────────────────────────────────────────────


class HealthcheckRegistry:
    """Maps configured check names to Healthcheck classes."""

    def __init__(self, checks: dict[str, type[Healthcheck]] | None = None) -> None:
        self._registry: dict[str, type[Healthcheck]] = {}
        for name, check_cls in (checks or {}).items():
            self.register(name, check_cls)

    def register(
        self, name: str, check_cls: Any = None
    ) -> Any:
        """Register ``check_cls`` under ``name``; usable as a decorator."""
        if check_cls is None:
            def decorator(cls: type[Healthcheck]) -> type[Healthcheck]:
                self.register(name, cls)
                return cls
            return decorator

        if not (isinstance(check_cls, type) and issubclass(check_cls, Healthcheck)):
            raise ConfigurationError(
                f"{getattr(check_cls, '__name__', check_cls)!s} registered as "
                f"'{name}' does not implement Healthcheck"
            )
        if name in self._registry and self._registry[name] is not check_cls:
            logger.warning(
                "Healthcheck '%s' re-registered: %s -> %s",
                name, self._registry[name].__name__, check_cls.__name__,
            )
        self._registry[name] = check_cls
        return check_cls

    def resolve(self, name: str) -> type[Healthcheck]:
        check_cls = self._registry.get(name)
        if check_cls is None:
            raise ConfigurationError(
                f"Unknown healthcheck '{name}'. Registered: {', '.join(self.names()) or '-'}"
            )
        return check_cls

    def names(self) -> list[str]:
        return list(self._registry)

    def __contains__(self, name: object) -> bool:
        return name in self._registry

    def __len__(self) -> int:
        return len(self._registry)

