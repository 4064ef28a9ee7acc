"""Rate Limiter — per-caller fixed-window admission control, safe under concurrency.

Invariants:
    - First admission (or first after the window elapsed) sets count=1, reset_at=now+window
    - A caller at or above max_requests is rejected BEFORE any state mutation
    - After a successful admit, count <= max_requests
    - Check-then-increment for one caller runs under that caller's own lock;
      unrelated callers never wait on each other
    - Expired entries are swept at most once per window length (bounded memory)

Design Decisions:
    - Owned instance, not a module global: the FastAPI lifespan constructs one per process
    - Lock lives on the entry so eviction drops state and lock together; a waiter that
      finds its entry evicted re-resolves before counting
    - Clock injected (time.monotonic by default) so tests control window expiry
    - _admit_locked is the awaitable critical section: a store that suspends between
      read and write stays correct because the per-key lock is held across it
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from structured_llm.core.errors import RateLimitExceededError

logger = logging.getLogger(__name__)


@dataclass
class RateLimitState:
    """Snapshot of one caller's window."""
    count: int
    reset_at: float


@dataclass
class _Entry:
    count: int = 0
    reset_at: float = 0.0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class RateLimiter:
    """Per-caller admission counter with per-key locking."""

    def __init__(
        self,
        max_requests: int = 12,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._entries)

    async def admit(self, caller_id: str) -> None:
        """Count one request for caller_id or raise RateLimitExceededError."""
        self._maybe_sweep()
        while True:
            entry = self._entries.get(caller_id)
            if entry is None:
                entry = _Entry()
                self._entries[caller_id] = entry
            async with entry.lock:
                if self._entries.get(caller_id) is not entry:
                    continue  # evicted while waiting
                await self._admit_locked(entry)
                return

    async def _admit_locked(self, entry: _Entry) -> None:
        entry.count, entry.reset_at = self._next_window(entry, self._clock())

    def _next_window(self, entry: _Entry, now: float) -> tuple[int, float]:
        """(count, reset_at) after one more admission, or raise when full."""
        if entry.count == 0 or entry.reset_at <= now:
            return 1, now + self.window_seconds
        if entry.count >= self.max_requests:
            raise RateLimitExceededError()
        return entry.count + 1, entry.reset_at

    def snapshot(self, caller_id: str) -> RateLimitState | None:
        entry = self._entries.get(caller_id)
        if entry is None or entry.count == 0:
            return None
        return RateLimitState(count=entry.count, reset_at=entry.reset_at)

    def sweep(self) -> int:
        """Drop entries whose window has elapsed and whose lock is free.

        Returns the number of evicted callers.
        """
        now = self._clock()
        self._last_sweep = now
        expired = [
            caller_id for caller_id, entry in self._entries.items()
            if entry.reset_at <= now and not entry.lock.locked()
        ]
        for caller_id in expired:
            del self._entries[caller_id]
        if expired:
            logger.debug(
                f"Rate limiter swept {len(expired)} expired callers",
            )
        return len(expired)

    def _maybe_sweep(self) -> None:
        if self._clock() - self._last_sweep >= self.window_seconds:
            self.sweep()
