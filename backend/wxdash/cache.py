"""Expiring in-memory cache with single-flight computation per key."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Generic, TypeVar

from .errors import ComputationError

logger = logging.getLogger(__name__)

V = TypeVar("V")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[V]):
    """A computed value and the instant it stops being served."""

    value: V
    expires_at: datetime  # timezone-aware

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at


class ComputeCache(Generic[V]):
    """Keyed cache where each miss is computed at most once concurrently.

    Readers: HTTP handlers (via get_or_compute) and the refresh task.
    Writers: the in-flight computation for a key (forced or not), or put() for
    values computed elsewhere.

    An entry becomes visible only after its computation has finished. Entries
    at or past their expiry are treated as absent. Failures are never cached.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self._entries: dict[str, CacheEntry[V]] = {}
        self._inflight: dict[str, asyncio.Task[V]] = {}
        self._lock = Lock()  # guards _entries and _inflight
        self._clock = clock
        self._computations = 0  # total compute() invocations

    # --- Plain cache access ---

    def get(self, key: str) -> V | None:
        """Return the cached value for key, or None if missing or expired."""
        entry = self._lookup(key)
        return entry.value if entry else None

    def put(self, key: str, value: V, expires_at: datetime) -> None:
        """Store a value directly, bypassing single-flight."""
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=expires_at)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def purge_expired(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            stale = [k for k, e in self._entries.items() if not e.is_valid(now)]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def expires_at(self, key: str) -> datetime | None:
        entry = self._lookup(key)
        return entry.expires_at if entry else None

    @property
    def computations(self) -> int:
        """How many times a compute function has been invoked. Useful in tests and logs."""
        return self._computations

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for e in self._entries.values() if e.is_valid(now))

    def __contains__(self, key: str) -> bool:
        return self._lookup(key) is not None

    # --- Single-flight ---

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[V]],
        expiry: Callable[[], datetime],
        *,
        force: bool = False,
    ) -> V:
        """Return the cached value for key, computing it if needed.

        Concurrent callers for the same key share one computation and receive
        the same value or the same ComputationError. The computation runs in
        its own task, so a caller that is cancelled (client disconnect) neither
        cancels it nor leaves the other waiters hanging.

        ``force`` skips the cached value and recomputes. A forced call that
        finds a computation already in flight joins it.
        """
        if not force:
            entry = self._lookup(key)
            if entry is not None:
                return entry.value

        with self._lock:
            task = self._inflight.get(key)
            if task is None:
                task = asyncio.get_running_loop().create_task(
                    self._compute(key, compute, expiry, force),
                    name=f"compute:{key}",
                )
                task.add_done_callback(_consume_exception)
                self._inflight[key] = task

        return await asyncio.shield(task)

    async def _compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[V]],
        expiry: Callable[[], datetime],
        force: bool,
    ) -> V:
        try:
            if not force:
                # Another caller may have stored the value since our fast-path check
                entry = self._lookup(key)
                if entry is not None:
                    return entry.value

            self._computations += 1
            try:
                value = await compute()
                expires_at = expiry()
            except Exception as e:
                logger.error("Computation for %s failed: %s", key, e)
                raise ComputationError(key, str(e) or type(e).__name__) from e

            with self._lock:
                self._entries[key] = CacheEntry(value=value, expires_at=expires_at)
                self._inflight.pop(key, None)
            logger.debug("Cached %s until %s", key, expires_at.isoformat())
            return value
        finally:
            with self._lock:
                if self._inflight.get(key) is asyncio.current_task():
                    del self._inflight[key]

    def _lookup(self, key: str) -> CacheEntry[V] | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or not entry.is_valid(now):
            return None
        return entry


def _consume_exception(task: asyncio.Task[Any]) -> None:
    # Every waiter may have been cancelled; mark the failure as retrieved so
    # asyncio does not warn about it at garbage collection.
    if not task.cancelled():
        task.exception()
