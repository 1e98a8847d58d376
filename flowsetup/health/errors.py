"""Errors that abort a health-check pass.

These are programmer / configuration mistakes. A check failing at runtime is
never one of these; it becomes an ERROR Health entry instead.
"""

from __future__ import annotations


class ConfigurationError(Exception):
    """Invalid health-check configuration or capability contract violation."""


class ServiceNotFound(ConfigurationError):
    """A deferred check asked the container for a service it cannot build."""
