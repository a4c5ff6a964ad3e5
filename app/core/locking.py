"""
Per-group mutual exclusion for recalculations.

Two writers on the same group must not both reload the group, recompute and
save, or the second save overwrites the first one's aggregate. Locks are held
per group key so different groups proceed in parallel.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable, Iterable, List, Tuple


class GroupLockRegistry:
    """Registry of asyncio locks keyed by group"""

    def __init__(self) -> None:
        # key -> (lock, number of holders and waiters)
        self._locks: Dict[Hashable, Tuple[asyncio.Lock, int]] = {}

    @asynccontextmanager
    async def hold(self, *keys: Hashable) -> AsyncIterator[None]:
        """
        Hold the locks of every given group.

        Keys are de-duplicated and acquired in a stable order so two callers
        locking overlapping groups cannot deadlock.
        """
        ordered = _ordered(keys)
        acquired: List[Hashable] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                try:
                    await lock.acquire()
                except BaseException:
                    self._release_ref(key)
                    raise
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                lock, _ = self._locks[key]
                lock.release()
                self._release_ref(key)

    def is_locked(self, key: Hashable) -> bool:
        entry = self._locks.get(key)
        return entry is not None and entry[0].locked()

    def __len__(self) -> int:
        return len(self._locks)

    def _checkout(self, key: Hashable) -> asyncio.Lock:
        lock, refs = self._locks.get(key, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[key] = (lock, refs + 1)
        return lock

    def _release_ref(self, key: Hashable) -> None:
        lock, refs = self._locks[key]
        if refs <= 1:
            del self._locks[key]
        else:
            self._locks[key] = (lock, refs - 1)


def _ordered(keys: Iterable[Hashable]) -> List[Hashable]:
    unique = list(dict.fromkeys(keys))
    return sorted(unique, key=repr)
