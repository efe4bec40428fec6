"""Display-refresh playhead polling.

The poller is advisory: it reads ``current_position()`` on a fixed cadence
and hands the value to a UI callback.  Nothing in the engine depends on it.
"""
from __future__ import annotations

import asyncio
import contextlib
from typing import Callable, List, Optional


class PositionPoller:
    """Cooperative, cancellable periodic reader of a position source."""

    def __init__(
        self,
        source: Callable[[], float],
        on_position: Callable[[float], None] | None = None,
        *,
        refresh_hz: float = 60.0,
    ) -> None:
        if refresh_hz <= 0:
            raise ValueError("refresh_hz must be positive")
        self._source = source
        self._callbacks: List[Callable[[float], None]] = []
        if on_position is not None:
            self._callbacks.append(on_position)
        self._interval = 1.0 / refresh_hz
        self._task: Optional[asyncio.Task[None]] = None
        self._last: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def last_position(self) -> Optional[float]:
        return self._last

    def add_callback(self, callback: Callable[[float], None]) -> None:
        self._callbacks.append(callback)

    def poll_once(self) -> float:
        """Sample the source and notify callbacks."""

        position = float(self._source())
        self._last = position
        for callback in self._callbacks:
            callback(position)
        return position

    async def run(self) -> None:
        while True:
            self.poll_once()
            await asyncio.sleep(self._interval)

    def start(self) -> asyncio.Task[None]:
        """Schedule :meth:`run` on the running event loop."""

        if self.running:
            assert self._task is not None
            return self._task
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


__all__ = ["PositionPoller"]
