"""Fixed one-minute bucket rate limiter for provider calls."""

from __future__ import annotations

import time
from typing import Callable

BUCKET_SECONDS = 60


class FixedWindowRateLimiter:
    """Count calls per whole-minute bucket and cap them at ``limit``.

    Buckets reset at minute boundaries, so a burst straddling a boundary can
    reach twice the nominal rate.
    """

    def __init__(self, limit: int, *, clock: Callable[[], float] = time.time) -> None:
        if limit <= 0:
            raise ValueError("limit must be greater than zero")
        self.limit = limit
        self._clock = clock
        self._buckets: dict[int, int] = {}

    def current_bucket(self) -> int:
        return int(self._clock() // BUCKET_SECONDS)

    def count(self, bucket: int | None = None) -> int:
        return self._buckets.get(self.current_bucket() if bucket is None else bucket, 0)

    def is_limited(self) -> bool:
        """Return whether the current bucket already reached the limit."""

        current = self.current_bucket()
        for bucket in [b for b in self._buckets if b < current]:
            del self._buckets[bucket]
        return self._buckets.get(current, 0) >= self.limit

    def record(self) -> int:
        """Attribute one call to the current bucket and return its new count."""

        current = self.current_bucket()
        self._buckets[current] = self._buckets.get(current, 0) + 1
        return self._buckets[current]

    def history(self) -> dict[int, int]:
        """Snapshot of the buckets still tracked."""

        return dict(self._buckets)


__all__ = ["BUCKET_SECONDS", "FixedWindowRateLimiter"]
