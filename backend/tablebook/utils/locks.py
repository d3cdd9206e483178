from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

SlotKey = tuple[str, str, str]


class SlotLockRegistry:
    """One asyncio.Lock per (tenant_id, date, time_slot); held from ledger read to commit."""

    def __init__(self) -> None:
        self._locks: dict[SlotKey, asyncio.Lock] = {}
        self._waiters: dict[SlotKey, int] = {}
        self._guard = asyncio.Lock()

    @asynccontextmanager
    async def hold(self, tenant_id: str, date: str, time_slot: str) -> AsyncIterator[None]:
        key = (tenant_id, date, time_slot)
        async with self._guard:
            lock = self._locks.setdefault(key, asyncio.Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            async with self._guard:
                self._waiters[key] -= 1
                if self._waiters[key] == 0:
                    del self._waiters[key]
                    del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
