"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from flowsetup.config import Settings
from flowsetup.core.bootstrap import Bootstrap
from flowsetup.health.base import EarlyBootHealthcheck, Healthcheck, HealthcheckRegistry
from flowsetup.health.environment import (
    ApplicationContext,
    CliEnvironment,
    HealthcheckEnvironment,
    WebEnvironment,
)
from flowsetup.health.models import Health, Status

EXECUTED: list[str] = []


# ── Fake checks ──────────────────────────────────────────────────────────────


class AlwaysOk(Healthcheck):
    def get_title(self) -> str:
        return "Always OK"

    def execute(self, environment: HealthcheckEnvironment) -> Health:
        EXECUTED.append("AlwaysOk")
        return Health("", "Everything is fine. Run <code>{{flowCommand}} help</code>", Status.OK)


class AlwaysError(Healthcheck):
    def get_title(self) -> str:
        return "Always error"

    def execute(self, environment: HealthcheckEnvironment) -> Health:
        EXECUTED.append("AlwaysError")
        return Health("", "Something is broken", Status.ERROR)


class AlwaysWarning(Healthcheck):
    def get_title(self) -> str:
        return "Always warning"

    def execute(self, environment: HealthcheckEnvironment) -> Health:
        EXECUTED.append("AlwaysWarning")
        return Health("Custom title", "Be careful", Status.WARNING)


class AlwaysRaises(Healthcheck):
    def get_title(self) -> str:
        return "Always raises"

    def execute(self, environment: HealthcheckEnvironment) -> Health:
        EXECUTED.append("AlwaysRaises")
        raise RuntimeError("secret path /etc/x")


class EarlyBootOk(EarlyBootHealthcheck):
    def __init__(self, flow_root: Path) -> None:
        self.flow_root = flow_root

    @classmethod
    def from_bootstrap(cls, bootstrap: Bootstrap) -> EarlyBootOk:
        return cls(bootstrap.settings.flow_root)

    def get_title(self) -> str:
        return "Early boot"

    def execute(self, environment: HealthcheckEnvironment) -> Health:
        EXECUTED.append("EarlyBootOk")
        return Health("", f"root={self.flow_root.name}", Status.OK)


FAKE_CHECKS = {
    "AlwaysOk": AlwaysOk,
    "AlwaysError": AlwaysError,
    "AlwaysWarning": AlwaysWarning,
    "AlwaysRaises": AlwaysRaises,
    "EarlyBootOk": EarlyBootOk,
}


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def executed() -> list[str]:
    """Names of fake checks executed during the test, in order."""
    EXECUTED.clear()
    return EXECUTED


@pytest.fixture
def registry() -> HealthcheckRegistry:
    return HealthcheckRegistry(FAKE_CHECKS)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        flow_root=tmp_path,
        flow_context="Development",
        healthchecks_file=tmp_path / "healthchecks.yaml",
        exception_log_dir=tmp_path / "Data" / "Logs" / "Exceptions",
        migrations_dir=tmp_path / "Migrations",
    )


@pytest.fixture
def bootstrap(settings: Settings) -> Bootstrap:
    return Bootstrap(settings)


@pytest.fixture
def cli_env() -> HealthcheckEnvironment:
    return HealthcheckEnvironment(
        application_context=ApplicationContext("Production"),
        execution_environment=CliEnvironment(is_windows=False),
    )


@pytest.fixture
def production_web_env() -> HealthcheckEnvironment:
    return HealthcheckEnvironment(
        application_context=ApplicationContext("Production/Live"),
        execution_environment=WebEnvironment(request_uri="https://example.com/setup/compiletime.json"),
    )


@pytest.fixture
def development_web_env() -> HealthcheckEnvironment:
    return HealthcheckEnvironment(
        application_context=ApplicationContext("Development"),
        execution_environment=WebEnvironment(request_uri="http://localhost/setup/compiletime.json"),
    )
