import asyncio
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager

LockKey = tuple[str, str]


class CaregiverLocks:
    """
    In-process ``asyncio.Lock`` per caregiver.

    Conflict check and write must run while the caregiver's lock is held.
    Keys are acquired in sorted order so doctor+nurse bookings never deadlock.
    Unused locks are dropped once no task holds or waits on them.
    """

    def __init__(self) -> None:
        self._locks: dict[LockKey, asyncio.Lock] = {}
        self._users: dict[LockKey, int] = {}

    @asynccontextmanager
    async def hold(self, *keys: tuple[str, str | None]) -> AsyncIterator[None]:
        ordered = sorted({(kind, ident) for kind, ident in keys if ident})
        async with AsyncExitStack() as stack:
            for key in ordered:
                await stack.enter_async_context(self._acquire(key))
            yield

    @asynccontextmanager
    async def _acquire(self, key: LockKey) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)


caregiver_locks = CaregiverLocks()
