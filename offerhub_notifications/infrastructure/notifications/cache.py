"""Short-lived in-memory cache for notification lookups."""

from __future__ import annotations

import time
from typing import Callable, Generic, TypeVar

V = TypeVar("V")

DEFAULT_TTL_SECONDS = 5 * 60


class NotificationCache(Generic[V]):
    """Key-value cache where every entry carries its own absolute expiry.

    Expired entries are removed lazily on read or in bulk by :meth:`cleanup`;
    nothing sweeps them in the background.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl
        self._clock = clock
        self._values: dict[str, V] = {}
        self._expiries: dict[str, float] = {}

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def set(self, key: str, value: V, ttl: float | None = None) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds (default TTL when ``None``)."""

        lifetime = self._default_ttl if ttl is None else ttl
        self._values[key] = value
        self._expiries[key] = self._clock() + lifetime

    def get(self, key: str) -> V | None:
        """Return the cached value, or ``None`` when missing or expired."""

        self._expire(key)
        return self._values.get(key)

    def has(self, key: str) -> bool:
        self._expire(key)
        return key in self._values

    def delete(self, key: str) -> None:
        self._values.pop(key, None)
        self._expiries.pop(key, None)

    def clear(self) -> None:
        self._values.clear()
        self._expiries.clear()

    def size(self) -> int:
        """Number of stored entries, expired ones included until swept."""

        return len(self._values)

    def __len__(self) -> int:
        return self.size()

    def cleanup(self) -> int:
        """Remove every expired entry and return how many were dropped."""

        now = self._clock()
        expired = [key for key, expiry in self._expiries.items() if now > expiry]
        for key in expired:
            self.delete(key)
        return len(expired)

    def _expire(self, key: str) -> None:
        expiry = self._expiries.get(key)
        if expiry is not None and self._clock() > expiry:
            self.delete(key)


__all__ = ["DEFAULT_TTL_SECONDS", "NotificationCache"]
