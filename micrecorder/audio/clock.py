"""Clock abstraction and the once-per-second elapsed-time timer."""

import asyncio
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class LoopClock:
    """Clock backed by the running asyncio event loop.

    ``now()`` is the loop's monotonic time in seconds and ``call_later``
    returns an ``asyncio.TimerHandle``. Anything exposing the same two
    methods (and handles with ``cancel()``) can stand in for it.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback, *args)


class ElapsedTimer:
    """Counts whole seconds while a segment is recording.

    Not a precise timer: each tick is scheduled one interval after the
    previous one ran, so it drifts. It only drives the user-facing counter.
    """

    def __init__(self, clock, on_tick: Callable[[int], None], interval: float = 1.0):
        self.clock = clock
        self.on_tick = on_tick
        self.interval = interval
        self.seconds = 0
        self._handle = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        """Reset to zero and begin ticking."""
        self.stop()
        self._handle = self.clock.call_later(self.interval, self._tick)

    def stop(self) -> None:
        """Cancel the pending tick and reset the counter."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.seconds = 0

    def _tick(self) -> None:
        if self._handle is None:
            return
        self.seconds += 1
        # Reschedule before notifying so a handler calling stop() wins
        self._handle = self.clock.call_later(self.interval, self._tick)
        logger.debug(f"Elapsed time: {self.seconds}s")
        self.on_tick(self.seconds)
