"""Tests for the HealthChecker pass."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from flowsetup.core.bootstrap import Bootstrap
from flowsetup.health.base import EarlyBootHealthcheck, Healthcheck, HealthcheckRegistry
from flowsetup.health.checker import HealthChecker
from flowsetup.health.configuration import HealthcheckDef
from flowsetup.health.environment import HealthcheckEnvironment
from flowsetup.health.errors import ConfigurationError
from flowsetup.health.models import Health, Status


class NeedsService(Healthcheck):
    """Deferred check whose constructor the container cannot satisfy."""

    def __init__(self, dependency: object) -> None:
        self.dependency = dependency

    def get_title(self) -> str:
        return "Needs service"

    def execute(self, environment: HealthcheckEnvironment) -> Health:
        return Health("", "", Status.OK)


class BrokenFactory(EarlyBootHealthcheck):
    def __init__(self, flow_root: Path) -> None:
        self.flow_root = flow_root

    @classmethod
    def from_bootstrap(cls, bootstrap: Bootstrap) -> BrokenFactory:
        return cls()  # type: ignore[call-arg]

    def get_title(self) -> str:
        return "Broken factory"

    def execute(self, environment: HealthcheckEnvironment) -> Health:
        return Health("", "", Status.OK)


def _checker(
    bootstrap: Bootstrap,
    registry: HealthcheckRegistry,
    environment: HealthcheckEnvironment,
    *definitions: HealthcheckDef,
    exception_log_dir: Path | None = None,
) -> HealthChecker:
    return HealthChecker(
        bootstrap,
        list(definitions),
        environment,
        registry=registry,
        exception_log_dir=exception_log_dir,
    )


# ── Ordering / short-circuit ─────────────────────────────────────────────────


class TestExecutionOrder:
    def test_empty_configuration(self, bootstrap, registry, cli_env) -> None:
        collection = _checker(bootstrap, registry, cli_env).execute()
        assert len(collection) == 0
        assert collection.has_error() is False

    def test_error_short_circuits_later_checks(
        self, bootstrap, registry, cli_env, executed
    ) -> None:
        collection = _checker(
            bootstrap, registry, cli_env,
            HealthcheckDef("a", "AlwaysOk", 10),
            HealthcheckDef("b", "AlwaysError", 20),
            HealthcheckDef("c", "AlwaysOk", 30),
        ).execute()

        assert collection.identifiers() == ["a", "b", "c"]
        assert [h.status for h in collection] == [Status.OK, Status.ERROR, Status.NOT_RUN]
        assert executed == ["AlwaysOk", "AlwaysError"]
        assert collection.has_error() is True

    def test_not_run_entry_has_title_and_empty_message(
        self, bootstrap, registry, cli_env
    ) -> None:
        collection = _checker(
            bootstrap, registry, cli_env,
            HealthcheckDef("broken", "AlwaysError"),
            HealthcheckDef("later", "AlwaysWarning"),
        ).execute()

        later = collection.get("later")
        assert later.title == "Always warning"
        assert later.message == ""
        assert later.status is Status.NOT_RUN

    def test_warnings_do_not_short_circuit(
        self, bootstrap, registry, cli_env, executed
    ) -> None:
        collection = _checker(
            bootstrap, registry, cli_env,
            HealthcheckDef("w1", "AlwaysWarning", 1),
            HealthcheckDef("w2", "AlwaysWarning", 2),
            HealthcheckDef("ok", "AlwaysOk", 3),
        ).execute()

        assert executed == ["AlwaysWarning", "AlwaysWarning", "AlwaysOk"]
        assert collection.has_error() is False

    def test_position_keywords_and_numbers(self, bootstrap, registry, cli_env) -> None:
        collection = _checker(
            bootstrap, registry, cli_env,
            HealthcheckDef("last", "AlwaysOk", "end"),
            HealthcheckDef("twenty", "AlwaysOk", 20),
            HealthcheckDef("unset", "AlwaysOk"),
            HealthcheckDef("first", "AlwaysOk", "start"),
            HealthcheckDef("five", "AlwaysOk", "5"),
        ).execute()

        assert collection.identifiers() == ["first", "unset", "five", "twenty", "last"]

    def test_equal_positions_keep_declaration_order(
        self, bootstrap, registry, cli_env
    ) -> None:
        collection = _checker(
            bootstrap, registry, cli_env,
            HealthcheckDef("x", "AlwaysOk", 10),
            HealthcheckDef("y", "AlwaysWarning", 10),
            HealthcheckDef("z", "AlwaysOk", 10),
        ).execute()

        assert collection.identifiers() == ["x", "y", "z"]

    def test_entries_without_class_name_are_skipped(
        self, bootstrap, registry, cli_env
    ) -> None:
        collection = _checker(
            bootstrap, registry, cli_env,
            HealthcheckDef("disabled", ""),
            HealthcheckDef("a", "AlwaysOk"),
        ).execute()

        assert collection.identifiers() == ["a"]


# ── Configuration errors ─────────────────────────────────────────────────────


class TestConfigurationErrors:
    def test_unknown_class_fails_before_any_check_runs(
        self, bootstrap, registry, cli_env, executed
    ) -> None:
        checker = _checker(
            bootstrap, registry, cli_env,
            HealthcheckDef("a", "AlwaysOk", 1),
            HealthcheckDef("b", "DoesNotExist", 2),
        )
        with pytest.raises(ConfigurationError, match="DoesNotExist"):
            checker.execute()
        assert executed == []

    def test_duplicate_identifier_fails_before_any_check_runs(
        self, bootstrap, registry, cli_env, executed
    ) -> None:
        checker = _checker(
            bootstrap, registry, cli_env,
            HealthcheckDef("a", "AlwaysOk", 1),
            HealthcheckDef("a", "AlwaysWarning", 2),
        )
        with pytest.raises(ConfigurationError, match="more than once"):
            checker.execute()
        assert executed == []

    def test_unbuildable_check_fails_before_any_check_runs(
        self, bootstrap, registry, cli_env, executed
    ) -> None:
        registry.register("NeedsService", NeedsService)
        checker = _checker(
            bootstrap, registry, cli_env,
            HealthcheckDef("a", "AlwaysOk", 1),
            HealthcheckDef("b", "NeedsService", 2),
        )
        with pytest.raises(ConfigurationError, match="NeedsService"):
            checker.execute()
        assert executed == []

    def test_unbuildable_early_boot_check(
        self, bootstrap, registry, cli_env, executed
    ) -> None:
        registry.register("BrokenFactory", BrokenFactory)
        checker = _checker(
            bootstrap, registry, cli_env,
            HealthcheckDef("a", "AlwaysOk", 1),
            HealthcheckDef("b", "BrokenFactory", 2),
        )
        with pytest.raises(ConfigurationError, match="BrokenFactory"):
            checker.execute()
        assert executed == []

    def test_invalid_position(self, bootstrap, registry, cli_env) -> None:
        checker = _checker(
            bootstrap, registry, cli_env, HealthcheckDef("a", "AlwaysOk", "middle")
        )
        with pytest.raises(ConfigurationError):
            checker.execute()


# ── Failing checks ───────────────────────────────────────────────────────────


class TestFailingCheck:
    def test_exception_becomes_error_with_reference(
        self, bootstrap, registry, cli_env, tmp_path
    ) -> None:
        log_dir = tmp_path / "exceptions"
        collection = _checker(
            bootstrap, registry, cli_env,
            HealthcheckDef("boom", "AlwaysRaises"),
            exception_log_dir=log_dir,
        ).execute()

        health = collection.get("boom")
        assert health.status is Status.ERROR
        assert health.title == "Always raises"
        assert "could not be executed" in health.message

        files = list(log_dir.glob("*.txt"))
        assert len(files) == 1
        assert f"<code>{files[0].stem}</code>" in health.message
        assert "secret path /etc/x" in files[0].read_text(encoding="utf-8")

    def test_exception_is_logged(self, bootstrap, registry, cli_env, caplog) -> None:
        with caplog.at_level(logging.ERROR, logger="flowsetup.health.checker"):
            _checker(
                bootstrap, registry, cli_env, HealthcheckDef("boom", "AlwaysRaises")
            ).execute()
        assert any("boom" in r.getMessage() for r in caplog.records)

    def test_details_hidden_from_production_web(
        self, bootstrap, registry, production_web_env
    ) -> None:
        collection = _checker(
            bootstrap, registry, production_web_env, HealthcheckDef("boom", "AlwaysRaises")
        ).execute()
        message = collection.get("boom").message
        assert "secret path /etc/x" not in message
        assert "RuntimeError" not in message

    @pytest.mark.parametrize("env_fixture", ["cli_env", "development_web_env"])
    def test_details_shown_where_safe(
        self, bootstrap, registry, env_fixture, request
    ) -> None:
        environment = request.getfixturevalue(env_fixture)
        collection = _checker(
            bootstrap, registry, environment, HealthcheckDef("boom", "AlwaysRaises")
        ).execute()
        assert "RuntimeError: secret path /etc/x" in collection.get("boom").message

    def test_failure_short_circuits(self, bootstrap, registry, cli_env, executed) -> None:
        collection = _checker(
            bootstrap, registry, cli_env,
            HealthcheckDef("boom", "AlwaysRaises", 1),
            HealthcheckDef("after", "AlwaysOk", 2),
        ).execute()
        assert collection.get("after").status is Status.NOT_RUN
        assert executed == ["AlwaysRaises"]


# ── Result post-processing ───────────────────────────────────────────────────


class TestResultPostProcessing:
    def test_empty_title_filled_from_check(self, bootstrap, registry, cli_env) -> None:
        collection = _checker(
            bootstrap, registry, cli_env, HealthcheckDef("a", "AlwaysOk")
        ).execute()
        assert collection.get("a").title == "Always OK"

    def test_explicit_title_kept(self, bootstrap, registry, cli_env) -> None:
        collection = _checker(
            bootstrap, registry, cli_env, HealthcheckDef("w", "AlwaysWarning")
        ).execute()
        assert collection.get("w").title == "Custom title"

    def test_command_placeholder_replaced(
        self, bootstrap, registry, cli_env, monkeypatch, tmp_path
    ) -> None:
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        collection = _checker(
            bootstrap, registry, cli_env, HealthcheckDef("a", "AlwaysOk")
        ).execute()
        message = collection.get("a").message
        assert "{{flowCommand}}" not in message
        assert "<code>./flow help</code>" in message


# ── Lifecycles ───────────────────────────────────────────────────────────────


class TestLifecycles:
    def test_early_boot_check_does_not_boot_container(
        self, bootstrap, registry, cli_env, settings
    ) -> None:
        collection = _checker(
            bootstrap, registry, cli_env, HealthcheckDef("early", "EarlyBootOk")
        ).execute()

        assert collection.get("early").message == f"root={settings.flow_root.name}"
        assert bootstrap.is_booted is False

    def test_deferred_check_boots_container(
        self, bootstrap, registry, cli_env
    ) -> None:
        _checker(bootstrap, registry, cli_env, HealthcheckDef("a", "AlwaysOk")).execute()
        assert bootstrap.is_booted is True
