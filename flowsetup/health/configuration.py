"""Health-check configuration — loads healthchecks.yaml into typed definitions.

Shape of the file::

    healthchecks:
      compiletime:
        database:
          className: database
          position: 20
      runtime:
        migrations:
          className: migrations
          position: start
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

PHASES = ("compiletime", "runtime")

DEFAULT_HEALTHCHECKS: dict[str, dict[str, dict[str, Any]]] = {
    "compiletime": {
        "basicRequirements": {"className": "basicRequirements", "position": "start"},
        "database": {"className": "database", "position": 20},
    },
    "runtime": {
        "endToEnd": {"className": "endToEnd", "position": "start"},
        "migrations": {"className": "migrations", "position": 10},
        "trustedProxies": {"className": "trustedProxies", "position": 20},
    },
}


# ── Data models ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class HealthcheckDef:
    """A configured check: identifier, registered class name, run position."""

    identifier: str
    class_name: str = ""
    position: int | float | str | None = None


# ── Sorting ──────────────────────────────────────────────────────────────────


def _sort_key(definition: HealthcheckDef) -> tuple[int, float]:
    position = definition.position
    if position is None or position == "":
        return (1, 0.0)
    if isinstance(position, bool):
        raise ConfigurationError(
            f"Invalid position {position!r} for healthcheck '{definition.identifier}'"
        )
    if isinstance(position, (int, float)):
        return (1, float(position))

    text = str(position).strip().lower()
    if text == "start":
        return (0, 0.0)
    if text == "end":
        return (2, 0.0)
    try:
        return (1, float(text))
    except ValueError:
        raise ConfigurationError(
            f"Invalid position {position!r} for healthcheck '{definition.identifier}', "
            "expected a number, 'start' or 'end'"
        ) from None


def sort_by_position(definitions: list[HealthcheckDef]) -> list[HealthcheckDef]:
    """Stable ascending sort; equal positions keep declaration order."""
    return sorted(definitions, key=_sort_key)


# ── Parsers ──────────────────────────────────────────────────────────────────


def parse_healthchecks(raw: Any) -> list[HealthcheckDef]:
    """Parse one phase, either ``{identifier: {...}}`` or a list of entries."""
    if raw is None:
        return []

    if isinstance(raw, dict):
        entries = [(str(identifier), entry) for identifier, entry in raw.items()]
    elif isinstance(raw, list):
        entries = []
        for entry in raw:
            if not isinstance(entry, dict) or not entry.get("identifier"):
                raise ConfigurationError(f"Healthcheck list entry without identifier: {entry!r}")
            if any(identifier == str(entry["identifier"]) for identifier, _ in entries):
                raise ConfigurationError(f"Duplicate healthcheck identifier '{entry['identifier']}'")
            entries.append((str(entry["identifier"]), entry))
    else:
        raise ConfigurationError(
            f"Healthcheck configuration must be a mapping or list, got {type(raw).__name__}"
        )

    definitions = []
    for identifier, entry in entries:
        if entry is None:
            # `identifier: ~` disables an inherited check
            definitions.append(HealthcheckDef(identifier=identifier))
            continue
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Healthcheck '{identifier}' must be a mapping")
        definitions.append(
            HealthcheckDef(
                identifier=identifier,
                class_name=str(entry.get("className") or ""),
                position=entry.get("position"),
            )
        )
    return definitions


class HealthcheckConfiguration:
    """Both configured phases, keyed by phase name."""

    def __init__(self, phases: dict[str, list[HealthcheckDef]] | None = None) -> None:
        self._phases = phases or {}

    @classmethod
    def defaults(cls) -> HealthcheckConfiguration:
        return cls.from_dict({"healthchecks": DEFAULT_HEALTHCHECKS})

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> HealthcheckConfiguration:
        section = raw.get("healthchecks") or {}
        if not isinstance(section, dict):
            raise ConfigurationError("'healthchecks' must be a mapping of phases")
        return cls({phase: parse_healthchecks(section.get(phase)) for phase in PHASES})

    @classmethod
    def load(cls, path: Path) -> HealthcheckConfiguration:
        """Parse the YAML file at ``path``; fall back to built-in defaults if missing."""
        if not path.exists():
            logger.warning("Healthcheck configuration not found: %s, using defaults", path)
            return cls.defaults()

        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse {path}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigurationError(f"{path} must contain a mapping")

        configuration = cls.from_dict(raw)
        logger.info(
            "Loaded healthchecks from %s (%s)",
            path,
            ", ".join(f"{p}={len(configuration.for_phase(p))}" for p in PHASES),
        )
        return configuration

    def for_phase(self, phase: str) -> list[HealthcheckDef]:
        if phase not in PHASES:
            raise ConfigurationError(f"Unknown healthcheck phase '{phase}'")
        return list(self._phases.get(phase, []))
