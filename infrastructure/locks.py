"""Per-resource mutual exclusion for booking writes

Lifecycle writes are check-then-write sequences. Holding the lock for every
room (and client phone) a write touches serializes them per resource while
unrelated rooms proceed concurrently.

A key's lock lives only while some task holds or waits on it, so the registry
stays proportional to in-flight writes rather than to every phone and room
ever seen.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable, List


def room_key(room_id) -> str:
    return f"room:{room_id}"


def phone_key(phone: str) -> str:
    return f"phone:{phone}"


class ResourceLocks:
    """Registry of asyncio locks keyed by resource name"""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def _checkout(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key: str) -> None:
        remaining = self._users[key] - 1
        if remaining:
            self._users[key] = remaining
        else:
            del self._users[key]
            del self._locks[key]

    @asynccontextmanager
    async def hold(self, *keys: Hashable) -> AsyncIterator[None]:
        """Acquire all keys in sorted order, release in reverse"""
        ordered = sorted({str(k) for k in keys})
        referenced: List[str] = []
        acquired: List[asyncio.Lock] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                referenced.append(key)
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in referenced:
                self._checkin(key)
