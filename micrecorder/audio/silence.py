"""Silence detection and the per-frame auto-stop loop."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

logger = logging.getLogger(__name__)


class DetectorState(Enum):
    ACTIVE = "active"
    SILENCE_PENDING = "silence_pending"
    HALTED = "halted"


@dataclass(frozen=True)
class Active:
    kind = DetectorState.ACTIVE


@dataclass(frozen=True)
class SilencePending:
    """Volume has been at or below threshold since ``since``."""
    since: float
    timer: Any  # handle returned by clock.call_later
    kind = DetectorState.SILENCE_PENDING


@dataclass(frozen=True)
class Halted:
    reason: str
    kind = DetectorState.HALTED


DetectorStatus = Union[Active, SilencePending, Halted]


class SilenceDetector:
    """Fires ``on_silence`` once volume stays low for ``silence_threshold`` ms.

    At most one silence window is pending at a time. A sample strictly above
    ``volume_threshold`` cancels it. Thresholds outside [0, 255] are not
    rejected: a negative threshold means nothing is ever silent and a
    threshold of 255 or more means everything is.
    """

    def __init__(
        self,
        clock,
        on_silence: Callable[[], None],
        volume_threshold: float = 30,
        silence_threshold: int = 2000,
    ):
        self.clock = clock
        self.on_silence = on_silence
        self.volume_threshold = volume_threshold
        self.silence_threshold = silence_threshold
        self.status: DetectorStatus = Active()

    @property
    def state(self) -> DetectorState:
        return self.status.kind

    @property
    def halted(self) -> bool:
        return isinstance(self.status, Halted)

    def feed(self, volume: float) -> None:
        """Consume one volume sample."""
        status = self.status
        if isinstance(status, Halted):
            return

        if volume > self.volume_threshold:
            if isinstance(status, SilencePending):
                status.timer.cancel()
                self.status = Active()
                logger.debug(f"Silence window cancelled at volume {volume:.1f}")
            return

        if isinstance(status, Active):
            timer = self.clock.call_later(self.silence_threshold / 1000.0, self._expire)
            self.status = SilencePending(since=self.clock.now(), timer=timer)
            logger.debug(f"Silence window opened at volume {volume:.1f}")

    def halt(self, reason: str = "stopped") -> None:
        """Cancel any pending window and ignore further samples. Idempotent."""
        status = self.status
        if isinstance(status, Halted):
            return
        if isinstance(status, SilencePending):
            status.timer.cancel()
        self.status = Halted(reason)

    def _expire(self) -> None:
        status = self.status
        if not isinstance(status, SilencePending):
            return
        silent_for = self.clock.now() - status.since
        self.status = Halted("silence")
        logger.info(f"Silence detected for {silent_for:.2f}s")
        self.on_silence()


class AutoStopMonitor:
    """Per-frame loop feeding analyzer volume into a silence detector.

    Runs for the lifetime of a segment. ``halt()`` cancels the next frame
    and the detector; it is idempotent and safe to call from ``on_silence``.
    """

    def __init__(
        self,
        clock,
        analyzer,
        on_silence: Callable[[], None],
        volume_threshold: float = 30,
        silence_threshold: int = 2000,
        frame_interval: float = 0.016,
    ):
        self.clock = clock
        self.analyzer = analyzer
        self.frame_interval = frame_interval
        self._on_silence = on_silence
        self.detector = SilenceDetector(
            clock,
            self._handle_silence,
            volume_threshold=volume_threshold,
            silence_threshold=silence_threshold,
        )
        self._frame_handle = None
        self.last_volume: Optional[float] = None

    @property
    def running(self) -> bool:
        return not self.detector.halted

    def start(self) -> None:
        self._process_frame()

    def halt(self, reason: str = "stopped") -> None:
        if self._frame_handle is not None:
            self._frame_handle.cancel()
            self._frame_handle = None
        self.detector.halt(reason)

    def _process_frame(self) -> None:
        self._frame_handle = None
        if self.detector.halted:
            return
        self.last_volume = self.analyzer.get_volume()
        self.detector.feed(self.last_volume)
        self._frame_handle = self.clock.call_later(self.frame_interval, self._process_frame)

    def _handle_silence(self) -> None:
        self.halt("silence")
        self._on_silence()
