"""Recording event handlers."""

from typing import Callable, Optional

from .audio import AudioBlob


class RecordingEvents:
    """Receives recording lifecycle events.

    Every method is a no-op. Subclass and override only the events you
    care about.
    """

    def on_start(self) -> None:
        """Capture of a new segment has begun."""

    def on_time_update(self, seconds: int) -> None:
        """One more second of the current segment has elapsed."""

    def on_finish(self, blob: AudioBlob) -> None:
        """A segment was finalized into a duration-corrected blob."""

    def on_error(self, error: Exception) -> None:
        """Device acquisition or encoding failed."""


class CallbackEvents(RecordingEvents):
    """Adapts plain callables to RecordingEvents."""

    def __init__(
        self,
        on_start: Optional[Callable[[], None]] = None,
        on_time_update: Optional[Callable[[int], None]] = None,
        on_finish: Optional[Callable[[AudioBlob], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        if callable(on_start):
            self.on_start = on_start
        if callable(on_time_update):
            self.on_time_update = on_time_update
        if callable(on_finish):
            self.on_finish = on_finish
        if callable(on_error):
            self.on_error = on_error
