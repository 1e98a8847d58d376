"""Basic system requirements — runs before anything else is booted."""

from __future__ import annotations

import importlib.util
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from flowsetup.health.base import EarlyBootHealthcheck
from flowsetup.health.environment import HealthcheckEnvironment
from flowsetup.health.models import Health, Status

if TYPE_CHECKING:
    from flowsetup.core.bootstrap import Bootstrap

REQUIRED_WRITABLE_FOLDERS = ("Configuration", "Data", "Packages", "Web/_Resources")
REQUIRED_MODULES = ("sqlite3", "ssl", "subprocess")


class RequirementError(Exception):
    """A basic requirement is not fulfilled."""


class BasicRequirementsHealthcheck(EarlyBootHealthcheck):
    def __init__(self, flow_root: Path) -> None:
        self.flow_root = flow_root

    @classmethod
    def from_bootstrap(cls, bootstrap: Bootstrap) -> BasicRequirementsHealthcheck:
        return cls(bootstrap.settings.flow_root)

    def get_title(self) -> str:
        return "Basic system requirements"

    def execute(self, environment: HealthcheckEnvironment) -> Health:
        try:
            self.check_file_permissions()
            self.check_required_modules()
            self.check_docstrings_available()
        except RequirementError as e:
            return Health("", str(e), Status.ERROR)

        return Health("", "All basic requirements are fulfilled.", Status.OK)

    def check_file_permissions(self) -> None:
        for folder in REQUIRED_WRITABLE_FOLDERS:
            path = self.flow_root / folder
            if not path.is_dir() and not path.is_symlink():
                try:
                    path.mkdir(parents=True, exist_ok=True)
                except OSError:
                    raise RequirementError(
                        f'The folder "{folder}" does not exist and could not be created but we need it.'
                    ) from None

            if not os.access(path, os.W_OK):
                raise RequirementError(f'The folder "{folder}" is not writeable but should be.')

    def check_required_modules(self) -> None:
        for module in REQUIRED_MODULES:
            if importlib.util.find_spec(module) is None:
                raise RequirementError(f'Module "{module}" is not available but required.')

    def check_docstrings_available(self) -> None:
        """This docstring is used to check if docstrings are available.

        DO NOT REMOVE
        """
        if sys.flags.optimize >= 2 or not BasicRequirementsHealthcheck.check_docstrings_available.__doc__:
            raise RequirementError(
                "Docstrings are stripped by your Python setup (-OO / PYTHONOPTIMIZE=2). "
                "Please run without docstring optimization."
            )
