"""Execution environment handed to every health check.

The environment is built explicitly by the transport (CLI or HTTP) instead of
being read from ambient process state inside the checks.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

COMMAND_PLACEHOLDER = "{{flowCommand}}"

_CONTEXT_ROOTS = ("Development", "Production", "Testing")


# ── Application context ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class ApplicationContext:
    """Flow application context, e.g. ``Production/Live``."""

    name: str

    def __post_init__(self) -> None:
        root = self.name.split("/", 1)[0]
        if root not in _CONTEXT_ROOTS:
            raise ValueError(
                f"Invalid application context '{self.name}', "
                f"root must be one of {', '.join(_CONTEXT_ROOTS)}"
            )

    @property
    def root(self) -> str:
        return self.name.split("/", 1)[0]

    @property
    def parent(self) -> ApplicationContext | None:
        if "/" not in self.name:
            return None
        return ApplicationContext(self.name.rsplit("/", 1)[0])

    @property
    def is_production(self) -> bool:
        return self.root == "Production"

    @property
    def is_development(self) -> bool:
        return self.root == "Development"

    @property
    def is_testing(self) -> bool:
        return self.root == "Testing"

    def __str__(self) -> str:
        return self.name


# ── Execution environments ───────────────────────────────────────────────────


@dataclass(frozen=True)
class CliEnvironment:
    is_windows: bool = False


@dataclass(frozen=True)
class WebEnvironment:
    request_uri: str
    is_windows: bool = False
    headers: dict[str, str] = field(default_factory=dict)
    remote_addr: str | None = None

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        return next((v for k, v in self.headers.items() if k.lower() == wanted), None)

    def has_header(self, name: str) -> bool:
        return self.header(name) is not None


@dataclass(frozen=True)
class HealthcheckEnvironment:
    application_context: ApplicationContext
    execution_environment: CliEnvironment | WebEnvironment

    @property
    def is_windows(self) -> bool:
        return self.execution_environment.is_windows

    @property
    def is_cli(self) -> bool:
        return isinstance(self.execution_environment, CliEnvironment)

    def is_safe_to_leak_technical_details(self) -> bool:
        """Whether check output may include paths, exception text or config.

        Only a web request in a production context is unsafe; the CLI is
        operated by someone with shell access anyway.
        """
        return self.is_cli or not self.application_context.is_production


# ── OS probing / command hint ────────────────────────────────────────────────


def is_windows_platform(platform: str | None = None) -> bool:
    platform = platform if platform is not None else sys.platform
    return platform.startswith(("win32", "cygwin"))


def resolve_invocation_hint(
    is_windows: bool,
    home: str | None = None,
    command: str = "flow",
) -> str:
    """How an operator invokes the distribution's command-line entry point."""
    if is_windows:
        return f".\\{command}.bat"

    if home:
        # https://github.com/sandstorm/oh-my-zsh-flow-plugin
        if (Path(home) / ".oh-my-zsh" / "custom" / "plugins" / command).exists():
            return command

    return f"./{command}"


def replace_command_placeholders(
    text: str,
    is_windows: bool,
    home: str | None = None,
    command: str = "flow",
) -> str:
    if COMMAND_PLACEHOLDER not in text:
        return text
    if home is None:
        home = os.environ.get("HOME")
    return text.replace(
        COMMAND_PLACEHOLDER, resolve_invocation_hint(is_windows, home, command)
    )
