"""
Inkwell Backend — Per-Key Locks
=================================

What:  Hands out one asyncio.Lock per key (rate-limit key, post id).
Why:   Read-modify-write sequences on one key must not interleave, while
       unrelated keys must never wait on each other. A single global lock
       would serialize every login in the process.
How:   A dict of key → Lock, created lazily. Creation happens without an
       await in between, so two coroutines on the same event loop always
       receive the same Lock object for the same key.

Lifetime:
    hold() counts holders and waiters per key. When the last one leaves,
    the entry is dropped, so the table only ever contains keys that are in
    use right now. Requests for ids that do not exist leave nothing behind.

Scope:
    Locks are process-local. Multi-worker deployments get per-worker
    exclusion only; the post service adds a row lock (SELECT ... FOR UPDATE)
    for the cross-process case.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable


class KeyedLock:
    """Mapping of key → asyncio.Lock with an `async with` helper."""

    def __init__(self) -> None:
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._holders: Dict[Hashable, int] = {}

    def get(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self.get(key)
        # Waiters count too: the entry must outlive everyone queued on it
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._holders[key] - 1
            if remaining:
                self._holders[key] = remaining
            else:
                del self._holders[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)
