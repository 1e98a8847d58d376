"""Database connectivity — connects with the configured backend options.

Backend options use the Flow driver names (``pdo_sqlite``, ``pdo_mysql``,
``pdo_pgsql``, ...) and are translated to a SQLAlchemy URL. Server drivers
need their DBAPI package installed (``flow-setup[mysql]`` / ``flow-setup[pgsql]``).
"""

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from flowsetup.health.base import EarlyBootHealthcheck
from flowsetup.health.environment import HealthcheckEnvironment
from flowsetup.health.models import Health, Status

if TYPE_CHECKING:
    from flowsetup.core.bootstrap import Bootstrap

logger = logging.getLogger(__name__)

SQLITE_DRIVERS = ("pdo_sqlite", "sqlite", "sqlite3")

# Flow driver name -> (SQLAlchemy dialect+driver, default port, extra to install)
SERVER_DRIVERS = {
    "pdo_mysql": ("mysql+pymysql", 3306, "mysql"),
    "mysqli": ("mysql+pymysql", 3306, "mysql"),
    "mysql": ("mysql+pymysql", 3306, "mysql"),
    "pdo_pgsql": ("postgresql+psycopg2", 5432, "pgsql"),
    "pgsql": ("postgresql+psycopg2", 5432, "pgsql"),
    "postgresql": ("postgresql+psycopg2", 5432, "pgsql"),
}


class DatabaseConnectionError(Exception):
    """The configured database could not be reached."""


class UnsupportedDriver(DatabaseConnectionError):
    """No SQLAlchemy dialect is known for the configured driver."""


def build_database_url(options: dict[str, Any]) -> URL:
    """SQLAlchemy URL for a server driver's backend options."""
    driver = str(options.get("driver") or "")
    if driver not in SERVER_DRIVERS:
        raise UnsupportedDriver(f"Unsupported database driver '{driver}'")

    dialect, default_port, _ = SERVER_DRIVERS[driver]
    return URL.create(
        dialect,
        username=options.get("user") or None,
        password=options.get("password") or None,
        host=options.get("host") or "127.0.0.1",
        port=int(options.get("port") or default_port),
        database=options.get("dbname") or None,
    )


def describe_backend(options: dict[str, Any]) -> str:
    """Short, password-free description used in error details."""
    driver = str(options.get("driver") or "")
    if driver in SQLITE_DRIVERS:
        return f"sqlite {options.get('path') or ''}"
    try:
        return build_database_url(options).render_as_string(hide_password=True)
    except UnsupportedDriver:
        return driver


def create_database_engine(
    options: dict[str, Any], timeout: float = 5.0, read_only: bool = False
) -> Engine:
    """Engine for the backend options; sqlite files are never created."""
    driver = str(options.get("driver") or "")
    if driver in SQLITE_DRIVERS:
        path = options.get("path") or ""
        if not path:
            raise DatabaseConnectionError("No sqlite path configured")
        uri = Path(path).resolve().as_uri() + ("?mode=ro" if read_only else "?mode=rw")
        return create_engine(
            "sqlite://",
            creator=lambda: sqlite3.connect(uri, uri=True, timeout=timeout),
            poolclass=NullPool,
        )

    url = build_database_url(options)
    try:
        return create_engine(
            url,
            connect_args={"connect_timeout": max(1, int(timeout))},
            poolclass=NullPool,
        )
    except ImportError as e:
        extra = SERVER_DRIVERS[driver][2]
        raise DatabaseConnectionError(
            f"Database driver for '{driver}' is not installed "
            f"(pip install 'flow-setup[{extra}]'): {e}"
        ) from e


def connect_database(options: dict[str, Any], timeout: float = 5.0) -> float:
    """Open a connection and run ``SELECT 1``; returns latency in ms."""
    engine = create_database_engine(options, timeout)
    t0 = time.perf_counter()
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        detail = getattr(e, "orig", None) or e
        raise DatabaseConnectionError(f"{describe_backend(options)}: {detail}") from e
    finally:
        engine.dispose()
    return (time.perf_counter() - t0) * 1000


class DatabaseHealthcheck(EarlyBootHealthcheck):
    def __init__(self, backend_options: dict[str, Any], timeout: float = 5.0) -> None:
        self.backend_options = backend_options
        self.timeout = timeout

    @classmethod
    def from_bootstrap(cls, bootstrap: Bootstrap) -> DatabaseHealthcheck:
        settings = bootstrap.settings
        options = settings.backend_options()
        if options.get("path"):
            options["path"] = str(settings.resolve_path(Path(str(options["path"]))))
        return cls(options, timeout=settings.db_connect_timeout)

    def get_title(self) -> str:
        return "Database"

    def execute(self, environment: HealthcheckEnvironment) -> Health:
        if not self.backend_options:
            return Health(
                "",
                "Please configure your database in the settings or use the command "
                "<code>{{flowCommand}} setup:database</code>",
                Status.ERROR,
            )

        try:
            latency = connect_database(self.backend_options, self.timeout)
        except DatabaseConnectionError as e:
            logger.warning("Database connection failed: %s", e)
            message = (
                "Please check your database settings. "
                "You can also rerun <code>{{flowCommand}} setup:database</code>"
            )
            if environment.is_safe_to_leak_technical_details():
                message += f"<br />{e}"
            return Health("", message, Status.ERROR)

        logger.debug("Database %s reachable in %.1fms", self.backend_options.get("driver"), latency)
        return Health("", "Connection up", Status.OK)
