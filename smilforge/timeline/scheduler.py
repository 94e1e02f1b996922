"""Frame schedulers driving cooperative playback."""
from __future__ import annotations

import asyncio
import itertools
from typing import Callable, Dict, Optional, Protocol

FrameCallback = Callable[[float], None]


class FrameScheduler(Protocol):
    def request_frame(self, callback: FrameCallback) -> int: ...

    def cancel_frame(self, handle: int) -> None: ...

    def now(self) -> float: ...


class ManualFrameScheduler:
    """Deterministic scheduler: frames run only when ``advance`` is called."""

    def __init__(self, start: float = 0.0) -> None:
        self._time = start
        self._ids = itertools.count(1)
        self._pending: Dict[int, FrameCallback] = {}

    def now(self) -> float:
        return self._time

    @property
    def pending(self) -> int:
        return len(self._pending)

    def request_frame(self, callback: FrameCallback) -> int:
        handle = next(self._ids)
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: int) -> None:
        self._pending.pop(handle, None)

    def advance(self, seconds: float) -> None:
        """Move the clock forward and run the frames queued before the call."""
        self._time += seconds
        due, self._pending = self._pending, {}
        for callback in due.values():
            callback(self._time)


class AsyncioFrameScheduler:
    """Schedules frames on the running asyncio loop at a fixed interval."""

    def __init__(self, fps: float = 60.0, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self.set_fps(fps)
        self._loop = loop
        self._ids = itertools.count(1)
        self._handles: Dict[int, asyncio.TimerHandle] = {}

    def set_fps(self, fps: float) -> None:
        """Change the frame interval; frames already queued keep theirs."""
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.interval = 1.0 / fps

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def request_frame(self, callback: FrameCallback) -> int:
        handle_id = next(self._ids)

        def run() -> None:
            self._handles.pop(handle_id, None)
            callback(self.loop.time())

        self._handles[handle_id] = self.loop.call_later(self.interval, run)
        return handle_id

    def cancel_frame(self, handle: int) -> None:
        timer = self._handles.pop(handle, None)
        if timer is not None:
            timer.cancel()
