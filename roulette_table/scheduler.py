"""Deferred callbacks owned by the table (currently only the spin lock)."""
from __future__ import annotations

import asyncio
from typing import Callable, Protocol


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...


class AsyncioScheduler:
    """Schedules callbacks on the running event loop.

    Must be used from inside the loop (i.e. from a websocket handler).
    """

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


__all__ = ["Cancellable", "Scheduler", "AsyncioScheduler"]
