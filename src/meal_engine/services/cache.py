"""Lookup cache abstractions."""

from dataclasses import dataclass, field
from typing import Protocol


class Cache(Protocol):
    """Cache interface for nutrient lookups."""

    def get(self, key: str) -> object | None:
        """Return a cached value if present."""

    def set(self, key: str, value: object) -> None:
        """Store a value."""


@dataclass
class InMemoryCache(Cache):
    """Dictionary-backed cache meant to live for a single generation call."""

    _entries: dict[str, object] = field(default_factory=dict)

    def get(self, key: str) -> object | None:
        """Return a cached value, or None when the key was never stored."""
        return self._entries.get(key)

    def set(self, key: str, value: object) -> None:
        """Store a value until the cache is discarded."""
        self._entries[key] = value
