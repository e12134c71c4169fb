"""
Host schedulers that drive the race engine.

The engine never sleeps or spawns threads. It asks a host for the next
animation frame and for delayed callbacks, and keeps the returned handle so
pause/reset can cancel it. Two hosts are provided: an asyncio one for live
runs and a manual one with a virtual clock for tests and instant replays.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Protocol, Tuple

from derby_race.config import FRAME_RATE

Callback = Callable[[], None]


class FrameHost(Protocol):
    def request_frame(self, callback: Callback) -> object:
        ...

    def call_later(self, delay_ms: float, callback: Callback) -> object:
        ...

    def cancel(self, handle: object) -> None:
        ...

    def now(self) -> float:
        ...


class AsyncioFrameHost:
    """Runs frames on an asyncio event loop at a fixed frame rate."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None, frame_rate: Optional[int] = None) -> None:
        self._loop = loop
        rate = frame_rate or FRAME_RATE
        if rate <= 0:
            raise ValueError(f"Frame rate must be positive, got {rate}")
        self.frame_interval = 1.0 / rate

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def request_frame(self, callback: Callback) -> asyncio.TimerHandle:
        return self.loop.call_later(self.frame_interval, callback)

    def call_later(self, delay_ms: float, callback: Callback) -> asyncio.TimerHandle:
        return self.loop.call_later(delay_ms / 1000.0, callback)

    def cancel(self, handle: object) -> None:
        if handle is not None:
            handle.cancel()

    def now(self) -> float:
        return time.monotonic() * 1000.0


@dataclass(eq=False)
class ManualHandle:
    callback: Callback
    due: float = 0.0
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualFrameHost:
    """
    Virtual-clock host. Time only moves when `advance`, `run_frames` or
    `run_until` is called; each frame step fires due timers first, then the
    frames queued before the step began.
    """

    frame_interval_ms: float = 1000.0 / 60.0
    current_time: float = 0.0
    _frames: List[ManualHandle] = field(default_factory=list, init=False, repr=False)
    _timers: List[Tuple[float, int, ManualHandle]] = field(default_factory=list, init=False, repr=False)
    _sequence: Iterator[int] = field(default_factory=itertools.count, init=False, repr=False)

    def request_frame(self, callback: Callback) -> ManualHandle:
        handle = ManualHandle(callback=callback, due=self.current_time)
        self._frames.append(handle)
        return handle

    def call_later(self, delay_ms: float, callback: Callback) -> ManualHandle:
        handle = ManualHandle(callback=callback, due=self.current_time + max(0.0, delay_ms))
        heapq.heappush(self._timers, (handle.due, next(self._sequence), handle))
        return handle

    def cancel(self, handle: object) -> None:
        if handle is not None:
            handle.cancel()

    def now(self) -> float:
        return self.current_time

    @property
    def pending_frames(self) -> int:
        return sum(1 for handle in self._frames if not handle.cancelled)

    @property
    def pending_timers(self) -> int:
        return sum(1 for _, _, handle in self._timers if not handle.cancelled)

    def _fire_timers(self) -> None:
        while self._timers and self._timers[0][0] <= self.current_time:
            _, _, handle = heapq.heappop(self._timers)
            if not handle.cancelled:
                handle.callback()

    def _fire_frames(self, frames: List[ManualHandle]) -> int:
        fired = 0
        for handle in frames:
            if handle.cancelled:
                continue
            handle.callback()
            fired += 1
        return fired

    def _step(self, delta_ms: float, target: Optional[float] = None) -> int:
        frames, self._frames = self._frames, []
        self.current_time += delta_ms
        if target is not None:
            self.current_time = min(self.current_time, target)
        self._fire_timers()
        return self._fire_frames(frames)

    def advance(self, ms: float) -> int:
        """Moves the clock forward by `ms`, frame by frame. Returns frames fired."""
        fired = 0
        target = self.current_time + ms
        while self.current_time < target:
            fired += self._step(self.frame_interval_ms, target=target)
        return fired

    def run_frames(self, count: int) -> int:
        fired = 0
        for _ in range(count):
            fired += self._step(self.frame_interval_ms)
        return fired

    def run_until(self, predicate: Callable[[], bool], max_ms: float = 3_600_000.0) -> bool:
        elapsed = 0.0
        while not predicate():
            if elapsed >= max_ms:
                return False
            self._step(self.frame_interval_ms)
            elapsed += self.frame_interval_ms
        return True
