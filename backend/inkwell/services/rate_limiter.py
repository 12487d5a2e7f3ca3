"""
Inkwell Backend — Sliding Window Rate Limiter
===============================================

What:  Per-(identity, action) attempt limiter for login, registration and
       AI content generation.
Why:   Slows down credential stuffing and protects the AI quota.
How:   Each key keeps a list of attempt timestamps. On every attempt:
       1. Read the list for the key
       2. Drop timestamps at least `window_seconds` old
       3. If the remaining count >= max_attempts, deny
       4. Otherwise append now, write the list back, admit

Algorithm: Sliding Window Log
    - Fixed window: 5 attempts at 14:59 + 5 at 15:00 = 10 in one minute
    - Sliding window: always counts the trailing 15 minutes

Concurrency:
    Steps 1-4 run under a per-key asyncio.Lock. Without it, two attempts
    for the same key could both read "4 attempts" across an await on a
    remote store and both be admitted past the threshold. Different keys
    never wait on each other.

Storage:
    The limiter talks to a RateLimitStore (get/put per key). The in-memory
    store serves single-process deployments; a shared counter service can
    implement the same two methods for multi-instance deployments without
    touching the window logic.

Memory:
    Keys are never evicted. Filtering on read bounds each list to
    max_attempts entries, but an idle identity keeps its (small) entry for
    the life of the process.
"""

import logging
import math
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from inkwell.exceptions import RateLimitExceededError
from inkwell.services.locks import KeyedLock

logger = logging.getLogger(__name__)


class RateLimitStore(ABC):
    """
    Storage contract for attempt timestamps.

    Implementations must return a list the caller may mutate freely
    (a copy, or a freshly deserialized value).
    """

    @abstractmethod
    async def get(self, key: str) -> List[float]:
        """Return the stored timestamps for `key` (empty list if unknown)."""
        ...

    @abstractmethod
    async def put(self, key: str, timestamps: List[float]) -> None:
        """Replace the stored timestamps for `key`."""
        ...


class InMemoryRateLimitStore(RateLimitStore):
    """Dict-backed store for single-process deployments."""

    def __init__(self) -> None:
        self._entries: Dict[str, List[float]] = {}

    async def get(self, key: str) -> List[float]:
        return list(self._entries.get(key, ()))

    async def put(self, key: str, timestamps: List[float]) -> None:
        self._entries[key] = list(timestamps)

    def __len__(self) -> int:
        return len(self._entries)


class RateLimiter:
    """
    Admit or deny attempts for (client_identifier, action) keys.

    Configuration is fixed per instance; callers only supply the key parts.

    Args:
        store:          Where attempt timestamps live
        max_attempts:   Attempts allowed inside one window (default: 5)
        window_seconds: Window length in seconds (default: 900 = 15 minutes)
        clock:          Current time in seconds; injectable for tests
    """

    def __init__(
        self,
        store: RateLimitStore,
        max_attempts: int = 5,
        window_seconds: int = 900,
        clock: Callable[[], float] = time.time,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.store = store
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._locks = KeyedLock()

    @staticmethod
    def make_key(client_identifier: str, action: str) -> str:
        return f"{client_identifier}:{action}"

    @property
    def retry_after_minutes(self) -> int:
        """Caller-facing retry hint: the window length, rounded up to minutes."""
        return math.ceil(self.window_seconds / 60)

    async def admit(self, client_identifier: str, action: str) -> bool:
        """
        Record an attempt and report whether it is within budget.

        Denied attempts are not recorded, so a client that keeps hammering
        is admitted again as soon as its oldest admitted attempt ages out.
        """
        key = self.make_key(client_identifier, action)
        async with self._locks.hold(key):
            now = self._clock()
            attempts = await self.store.get(key)
            recent = [ts for ts in attempts if now - ts < self.window_seconds]

            if len(recent) >= self.max_attempts:
                logger.warning(
                    "Rate limit exceeded for %s: %d attempts in %ds window",
                    key,
                    len(recent),
                    self.window_seconds,
                )
                # Write back the filtered list so expired entries don't linger
                if len(recent) != len(attempts):
                    await self.store.put(key, recent)
                return False

            recent.append(now)
            await self.store.put(key, recent)
            return True

    async def check(
        self, client_identifier: str, action: str, message: Optional[str] = None
    ) -> None:
        """
        admit() for route handlers: raises instead of returning False.

        Raises:
            RateLimitExceededError with retry_after in minutes.
        """
        if not await self.admit(client_identifier, action):
            raise RateLimitExceededError(
                retry_after=self.retry_after_minutes,
                message=message,
                context={"action": action},
            )
