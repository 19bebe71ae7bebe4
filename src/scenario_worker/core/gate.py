"""Admission gate bounding how many browser sessions run at once.

A counting semaphore with an explicit FIFO wait list. When a slot is
released while callers are waiting, it is handed straight to the oldest
waiter instead of being returned to the free count, so a caller arriving
later can never overtake a queued one.

All state lives on one event loop and neither ``acquire`` nor ``release``
awaits between reading and updating it, which makes them atomic with respect
to each other.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)


class AdmissionGate:
    def __init__(self, limit: int = 2) -> None:
        self.limit = max(1, int(limit))
        self._active = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def active(self) -> int:
        return self._active

    @property
    def waiting(self) -> int:
        return sum(1 for w in self._waiters if not w.done())

    async def acquire(self) -> int:
        """Wait for a slot; return the milliseconds spent queued."""
        if self._active < self.limit and not self.waiting:
            self._active += 1
            return 0

        queued_at = time.perf_counter()
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        logger.info(f"Run queued ({self._active}/{self.limit} active, {self.waiting} waiting)")
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # Slot was handed over just before cancellation; pass it on
                self.release()
            else:
                self._remove(fut)
            raise
        return int((time.perf_counter() - queued_at) * 1000)

    def release(self) -> None:
        """Free a slot, handing it directly to the oldest live waiter if any."""
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                # Ownership transfers; the active count stays the same
                fut.set_result(None)
                return
        self._active = max(0, self._active - 1)

    def _remove(self, fut: asyncio.Future[None]) -> None:
        try:
            self._waiters.remove(fut)
        except ValueError:
            pass

    @asynccontextmanager
    async def slot(self) -> AsyncGenerator[int, None]:
        """``async with gate.slot() as queued_ms``: hold a slot for the block."""
        queued_ms = await self.acquire()
        try:
            yield queued_ms
        finally:
            self.release()

    def stats(self) -> dict[str, int]:
        return {"limit": self.limit, "active": self._active, "waiting": self.waiting}
