"""
Keyed Locks

In-process serialization points keyed by an arbitrary string. Used by the
engagement ledger so that concurrent requests for the same actor run their
check-and-record step one at a time.

Locks live in a WeakValueDictionary: a key's lock exists only while some
coroutine holds or waits on it, so the registry never grows with idle keys.
"""

import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator


class KeyedLock:
    """A family of asyncio locks, one per key."""
    
    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
    
    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock
    
    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for `key` for the duration of the block."""
        lock = self._lock_for(key)
        async with lock:
            yield
    
    def __len__(self) -> int:
        return len(self._locks)
