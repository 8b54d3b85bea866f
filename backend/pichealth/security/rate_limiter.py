"""
PicHealth API — Fixed-Window Rate Limiter
==========================================

What:  Per-identifier request counter (identifier = API key) with a reset time.
Why:   Keeps one client from exhausting the Gemini quota for everyone else.
How:   Each identifier owns one record {count, reset_time}:

           no record / window over  → new record, count = 1, not limited
           count >= limit           → limited (count is not incremented)
           otherwise                → count += 1, not limited

       A background task sweeps records whose window has ended, bounding
       memory to the identifiers seen in the last window.
Who:   Constructed once in create_app(), stored on `app.state.rate_limiter`
       and reached from the `enforce_rate_limit` route dependency.

Algorithm: Fixed Window Counter
    A client can send `limit` requests at the very end of one window and
    `limit` more at the start of the next. That burst at the boundary is
    accepted as a known limitation of the fixed window.

Thread Safety:
    One lock guards the table. Handlers run on the event loop, but the lock
    keeps increments atomic if the limiter is ever called from a threadpool.
    The sweep takes a snapshot of expired keys and deletes them one at a
    time, so requests are never blocked for a full scan.

Production Upgrade Path:
    Single-process only. For several workers, move the table to Redis
    (INCR + EXPIRE per window).
"""

import asyncio
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class RateLimitRecord:
    count: int
    reset_time: float  # epoch seconds at which the window ends


@dataclass(frozen=True)
class RateLimitInfo:
    remaining: int
    reset_time: float

    def retry_after(self, now: float) -> int:
        """Whole seconds from `now` until the window ends (at least 1)."""
        return max(1, math.ceil(self.reset_time - now))


class FixedWindowRateLimiter:
    """
    In-memory fixed-window rate limiter.

    Args:
        window_seconds: Window length (default 60s).
        clock: Returns the current time in epoch seconds. Injectable for tests.
    """

    def __init__(self, window_seconds: float = 60, clock: Callable[[], float] = time.time):
        self.window_seconds = window_seconds
        self._clock = clock
        self._records: Dict[str, RateLimitRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def now(self) -> float:
        return self._clock()

    def is_rate_limited(self, identifier: str, limit: int) -> bool:
        """
        Count one request for `identifier` and report whether it is over `limit`.

        The first call of a window creates the record with count 1. With
        limit=N, calls 1..N pass and call N+1 is limited.
        """
        now = self._clock()
        with self._lock:
            record = self._records.get(identifier)
            if record is None or now > record.reset_time:
                self._records[identifier] = RateLimitRecord(
                    count=1, reset_time=now + self.window_seconds
                )
                return False

            if record.count >= limit:
                return True

            record.count += 1
            return False

    def get_info(self, identifier: str, limit: int) -> RateLimitInfo:
        """Remaining requests and reset time, without counting a request."""
        now = self._clock()
        with self._lock:
            record = self._records.get(identifier)
            if record is None or now > record.reset_time:
                return RateLimitInfo(remaining=limit, reset_time=now + self.window_seconds)
            return RateLimitInfo(
                remaining=max(0, limit - record.count),
                reset_time=record.reset_time,
            )

    def record_for(self, identifier: str) -> Optional[RateLimitRecord]:
        with self._lock:
            record = self._records.get(identifier)
            return None if record is None else RateLimitRecord(record.count, record.reset_time)

    def sweep(self) -> int:
        """
        Delete records whose window has ended.

        Returns:
            Number of records removed.
        """
        now = self._clock()
        with self._lock:
            expired = [key for key, record in self._records.items() if now > record.reset_time]

        removed = 0
        for key in expired:
            with self._lock:
                record = self._records.get(key)
                # A request may have opened a new window since the snapshot
                if record is not None and now > record.reset_time:
                    del self._records[key]
                    removed += 1

        if removed:
            logger.debug("Swept %d expired rate-limit record(s)", removed)
        return removed

    async def run_sweeper(self, interval: float = 300) -> None:
        """
        Sweep every `interval` seconds until cancelled.

        Started as a task in the app lifespan; cancellation ends the loop.
        """
        logger.info("Rate-limit sweeper started (interval=%ss)", interval)
        while True:
            await asyncio.sleep(interval)
            self.sweep()
