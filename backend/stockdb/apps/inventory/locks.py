from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class _LockEntry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.holders = 0


class ItemLockRegistry:
    """
    One re-entrant lock per item id, created on demand.

    Sync FastAPI endpoints run in a threadpool, so two stock exits against
    the same item can interleave between the stock check and the write.
    Holding the item's lock from the check until the commit serializes
    them. Entries are dropped once nobody holds or waits on them.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[str, _LockEntry] = {}

    @contextmanager
    def hold(self, item_id: str) -> Iterator[None]:
        key = str(item_id)
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _LockEntry()
            entry.holders += 1

        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
