"""Entry point for flow-setup — `flow-setup` console script."""

from __future__ import annotations

import argparse
import logging
import subprocess
import sys

import uvicorn
from rich.console import Console
from rich.markup import escape

from flowsetup.config import Settings, settings
from flowsetup.console import colorize_logo, make_console, print_health_collection
from flowsetup.core.bootstrap import Bootstrap
from flowsetup.core.phases import COMPILETIME, RUNTIME, cli_environment, run_phase
from flowsetup.health.errors import ConfigurationError
from flowsetup.health.environment import is_windows_platform, replace_command_placeholders
from flowsetup.health.models import Health, HealthCollection, InvalidHealthPayload, Status

logger = logging.getLogger(__name__)

SETUP_ALIASES = ("welcome", "setup:setup:index", "setup:index")

RUNTIME_COMMAND = [sys.executable, "-m", "flowsetup.main", "runtime-checks"]


def configure_logging(level: str) -> None:
    # stderr: runtime-checks writes its JSON to stdout
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def _framework_failure(message: str) -> HealthCollection:
    return HealthCollection.of(Health("Flow Framework", message, Status.ERROR))


def fetch_runtime_healthchecks(timeout: int) -> HealthCollection:
    """Run the runtime phase in a fresh interpreter and parse its JSON output.

    Raises RuntimeError if the subprocess fails and InvalidHealthPayload if it
    does not print a valid health collection.
    """
    try:
        result = subprocess.run(
            RUNTIME_COMMAND,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        raise RuntimeError(f"Runtime healthchecks timed out after {timeout}s") from None
    except OSError as e:
        raise RuntimeError(f"Could not start runtime healthchecks: {e}") from e

    if result.returncode != 0:
        stderr = result.stderr.strip().splitlines()
        raise RuntimeError(
            f"Runtime healthchecks exited with code {result.returncode}"
            + (f": {stderr[-1]}" if stderr else "")
        )
    return HealthCollection.from_json(result.stdout)


def run_setup(console: Console, bootstrap: Bootstrap) -> int:
    """Print the logo and every health entry; returns the process exit code."""
    environment = cli_environment(bootstrap)
    compiletime = run_phase(bootstrap, COMPILETIME, environment)

    console.print(colorize_logo())
    print_health_collection(console, compiletime)

    has_error = compiletime.has_error()
    if not has_error:
        try:
            runtime = fetch_runtime_healthchecks(bootstrap.settings.runtime_subprocess_timeout)
        except InvalidHealthPayload as e:
            logger.error("Runtime healthchecks returned invalid output: %s", e)
            print_health_collection(console, _framework_failure(
                f"Flow didn't respond as expected. Expected subprocess to return valid json. {e}."
            ))
            return 1
        except RuntimeError as e:
            logger.error("%s", e)
            print_health_collection(console, _framework_failure(
                f"Flow didn't respond as expected. \"{e}\". Check the log output above for details."
            ))
            return 1

        print_health_collection(console, runtime)
        has_error = runtime.has_error()

    if has_error:
        console.print("[error]Flow setup not complete.[/error]")

    console.print(replace_command_placeholders(
        "You can rerun this command anytime via [code]{{flowCommand}} setup[/code]",
        is_windows_platform(),
        command=bootstrap.settings.command_name,
    ))
    return 1 if has_error else 0


def run_runtime_checks(bootstrap: Bootstrap) -> int:
    """Internal: runtime phase as JSON on stdout, consumed by `setup`."""
    collection = run_phase(bootstrap, RUNTIME, cli_environment(bootstrap))
    sys.stdout.write(collection.to_json())
    sys.stdout.flush()
    return 0


def run_server(app_settings: Settings) -> None:
    """Start the setup dashboard."""
    uvicorn.run(
        "flowsetup.api.server:app",
        host=app_settings.api_host,
        port=app_settings.api_port,
        log_level=app_settings.log_level.lower(),
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="flow-setup", description="Flow setup — environment and health checks"
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("setup", aliases=list(SETUP_ALIASES), help="Show information about the system health")
    sub.add_parser("runtime-checks", help=argparse.SUPPRESS)
    sub.add_parser("serve", help="Start the setup dashboard (/setup)")

    args = parser.parse_args(argv)
    configure_logging(settings.log_level)

    try:
        if args.command in ("setup", *SETUP_ALIASES):
            return run_setup(make_console(), Bootstrap.from_settings(settings))
        if args.command == "runtime-checks":
            return run_runtime_checks(Bootstrap.from_settings(settings))
    except ConfigurationError as e:
        logger.error("Invalid healthcheck configuration: %s", e)
        make_console(stderr=True).print(f"[error]Invalid healthcheck configuration:[/error] {escape(str(e))}")
        return 2

    if args.command == "serve":
        run_server(settings)
        return 0

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
