"""Health data model — Status, Health, HealthCollection.

A HealthCollection is the ordered outcome of one evaluation pass. It has
value semantics: every "add" returns a new collection, prior entries are never
replaced or reordered.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


# ── Models ───────────────────────────────────────────────────────────────────


class Status(str, Enum):
    OK = "OK"
    ERROR = "ERROR"
    WARNING = "WARNING"
    UNKNOWN = "UNKNOWN"
    NOT_RUN = "NOT_RUN"


class InvalidHealthPayload(ValueError):
    """Raised when a serialized health collection cannot be parsed."""


@dataclass(frozen=True)
class Health:
    """Outcome of a single health check."""

    title: str
    message: str
    status: Status

    def __post_init__(self) -> None:
        # Status("FOO") raises ValueError, which is what we want for bad input
        if not isinstance(self.status, Status):
            object.__setattr__(self, "status", Status(self.status))

    def with_title(self, title: str) -> Health:
        return replace(self, title=title)

    def with_message(self, message: str) -> Health:
        return replace(self, message=message)

    def to_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "message": self.message,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Health:
        if "status" not in data:
            raise ValueError("Health entry is missing 'status'")
        return cls(
            title=str(data.get("title") or ""),
            message=str(data.get("message") or ""),
            status=Status(data["status"]),
        )


class HealthCollection:
    """Ordered, append-only sequence of (identifier, Health) pairs."""

    __slots__ = ("_entries",)

    def __init__(self, *entries: tuple[str, Health]) -> None:
        self._entries: tuple[tuple[str, Health], ...] = tuple(entries)

    @classmethod
    def empty(cls) -> HealthCollection:
        return cls()

    @classmethod
    def of(cls, *healths: Health) -> HealthCollection:
        """Build a collection keyed by position."""
        collection = cls.empty()
        for health in healths:
            collection = collection.append(health)
        return collection

    def append(self, health: Health) -> HealthCollection:
        return self.with_entry(str(len(self._entries)), health)

    def with_entry(self, identifier: str, health: Health) -> HealthCollection:
        if identifier in self.identifiers():
            raise ValueError(f"Health entry '{identifier}' already exists")
        return HealthCollection(*self._entries, (identifier, health))

    def merge(self, other: HealthCollection) -> HealthCollection:
        merged = self
        for identifier, health in other.items():
            merged = merged.with_entry(identifier, health)
        return merged

    def has_error(self) -> bool:
        return any(health.status is Status.ERROR for _, health in self._entries)

    def identifiers(self) -> list[str]:
        return [identifier for identifier, _ in self._entries]

    def items(self) -> Iterator[tuple[str, Health]]:
        return iter(self._entries)

    def get(self, identifier: str) -> Health | None:
        return next((h for i, h in self._entries if i == identifier), None)

    def __iter__(self) -> Iterator[Health]:
        return (health for _, health in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HealthCollection):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        inner = ", ".join(f"{i}:{h.status.value}" for i, h in self._entries)
        return f"HealthCollection({inner})"

    # ── Serialization ────────────────────────────────────────────────────

    def to_dict(self) -> dict[str, dict[str, str]]:
        """Identifier-keyed projection, insertion order preserved."""
        return {identifier: health.to_dict() for identifier, health in self._entries}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> HealthCollection:
        try:
            data = json.loads(text)
        except (TypeError, json.JSONDecodeError) as e:
            raise InvalidHealthPayload(f"Invalid JSON: {e}") from e

        if isinstance(data, list):
            pairs = [(str(i), entry) for i, entry in enumerate(data)]
        elif isinstance(data, dict):
            pairs = [(str(k), v) for k, v in data.items()]
        else:
            raise InvalidHealthPayload(
                f"Expected a JSON object or array, got {type(data).__name__}"
            )

        collection = cls.empty()
        for identifier, entry in pairs:
            if not isinstance(entry, dict):
                raise InvalidHealthPayload(f"Entry '{identifier}' is not an object")
            try:
                collection = collection.with_entry(identifier, Health.from_dict(entry))
            except ValueError as e:
                raise InvalidHealthPayload(f"Entry '{identifier}': {e}") from e
        return collection
