"""Pending database migrations (deferred: needs the booted container)."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from flowsetup.health.base import Healthcheck
from flowsetup.health.environment import HealthcheckEnvironment
from flowsetup.health.models import Health, Status

from .database import (
    DatabaseConnectionError,
    UnsupportedDriver,
    create_database_engine,
    describe_backend,
)

if TYPE_CHECKING:
    from flowsetup.config import Settings
    from flowsetup.core.bootstrap import ServiceContainer

logger = logging.getLogger(__name__)

MIGRATION_STATUS_TABLE = "flow_doctrine_migrationstatus"
_VERSION_RE = re.compile(r"^Version(\d+)\.(py|php|sql)$")


class MigrationStatusError(Exception):
    """Migration status could not be read from the database."""


class MigrationStatusUnsupported(MigrationStatusError):
    """The configured backend does not expose migration status to us."""


@dataclass(frozen=True)
class MigrationStatus:
    available: int
    executed: int
    new: int


class MigrationStatusService:
    """Compares migration files on disk with the executed versions table."""

    def __init__(
        self, migrations_dir: Path, backend_options: dict[str, Any], timeout: float = 5.0
    ) -> None:
        self.migrations_dir = migrations_dir
        self.backend_options = backend_options
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> MigrationStatusService:
        options = settings.backend_options()
        if options.get("path"):
            options["path"] = str(settings.resolve_path(Path(str(options["path"]))))
        return cls(
            settings.resolve_path(settings.migrations_dir), options, timeout=settings.db_connect_timeout
        )

    def available_versions(self) -> set[str]:
        if not self.migrations_dir.is_dir():
            return set()
        versions = set()
        for path in self.migrations_dir.rglob("Version*"):
            match = _VERSION_RE.match(path.name)
            if match:
                versions.add(match.group(1))
        return versions

    def executed_versions(self) -> set[str]:
        if not self.backend_options:
            raise MigrationStatusError("No database configured")

        try:
            engine = create_database_engine(self.backend_options, self.timeout, read_only=True)
        except UnsupportedDriver as e:
            raise MigrationStatusUnsupported(str(e)) from e
        except DatabaseConnectionError as e:
            raise MigrationStatusError(str(e)) from e

        try:
            with engine.connect() as conn:
                if not inspect(conn).has_table(MIGRATION_STATUS_TABLE):
                    return set()
                rows = conn.execute(text(f"SELECT version FROM {MIGRATION_STATUS_TABLE}")).fetchall()
        except SQLAlchemyError as e:
            detail = getattr(e, "orig", None) or e
            raise MigrationStatusError(f"{describe_backend(self.backend_options)}: {detail}") from e
        finally:
            engine.dispose()
        # versions are stored fully qualified, e.g. "Neos\Flow\Persistence\...\Version20161124230842"
        return {m.group(1) for (v,) in rows if (m := re.search(r"(\d{14})$", str(v)))}

    def get_migration_status(self) -> MigrationStatus:
        available = self.available_versions()
        executed = self.executed_versions()
        return MigrationStatus(
            available=len(available),
            executed=len(executed),
            new=len(available - executed),
        )


class MigrationsHealthcheck(Healthcheck):
    def __init__(self, status_service: MigrationStatusService) -> None:
        self.status_service = status_service

    @classmethod
    def from_container(cls, container: ServiceContainer) -> MigrationsHealthcheck:
        return cls(container.get(MigrationStatusService))

    def get_title(self) -> str:
        return "Database migrations"

    def execute(self, environment: HealthcheckEnvironment) -> Health:
        try:
            status = self.status_service.get_migration_status()
        except MigrationStatusUnsupported as e:
            logger.info("%s", e)
            return Health(
                "",
                "Could not determine the migration status. "
                "Run <code>{{flowCommand}} doctrine:migrationstatus</code> to check manually.",
                Status.UNKNOWN,
            )
        except MigrationStatusError as e:
            logger.warning("Migration status unavailable: %s", e)
            return Health(
                "",
                "No doctrine migrations have been executed. "
                "Please run <code>{{flowCommand}} doctrine:migrate</code>",
                Status.ERROR,
            )

        if status.executed == 0 and status.available > 0:
            return Health(
                "",
                "No doctrine migrations have been executed. "
                "Please run <code>{{flowCommand}} doctrine:migrate</code>",
                Status.ERROR,
            )

        if status.new > 0:
            return Health(
                "",
                "Some doctrine migrations have yet to be executed. "
                "Please run <code>{{flowCommand}} doctrine:migrate</code>",
                Status.WARNING,
            )

        return Health("", "All doctrine migrations have been executed.", Status.OK)
