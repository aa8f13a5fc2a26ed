import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class IdentityLocks:
    """One asyncio lock per identity: messages from the same phone run one at a time."""

    def __init__(self):
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._waiters: defaultdict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, identity: str) -> AsyncIterator[None]:
        self._waiters[identity] += 1
        lock = self._locks[identity]
        try:
            async with lock:
                yield
        finally:
            self._waiters[identity] -= 1
            if self._waiters[identity] == 0:
                del self._waiters[identity]
                self._locks.pop(identity, None)

    def is_locked(self, identity: str) -> bool:
        lock = self._locks.get(identity)
        return lock is not None and lock.locked()


_identity_locks: IdentityLocks | None = None


def get_identity_locks() -> IdentityLocks:
    global _identity_locks
    if _identity_locks is None:
        _identity_locks = IdentityLocks()
    return _identity_locks
