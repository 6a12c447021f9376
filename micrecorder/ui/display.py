"""Elapsed-time formatting and the console recording display."""

import math
import logging
from typing import Optional

from pubsub import pub
from rich.console import Console

from ..audio.audio_pub import TOPIC_STARTED, TOPIC_TIME_UPDATED, TOPIC_FINISHED, TOPIC_FAILED
from ..models.audio import AudioBlob

logger = logging.getLogger(__name__)

UNKNOWN_TIME = "--:--"


def format_time(seconds: float) -> str:
    """Render elapsed seconds as zero-padded ``MM:SS``; negative is unknown."""
    if seconds < 0:
        return UNKNOWN_TIME
    minutes = math.floor(seconds / 60)
    remaining_seconds = math.floor(seconds % 60)
    return f"{minutes:02d}:{remaining_seconds:02d}"


class RecordingDisplay:
    """Prints recording progress published by PubSubRecordingEvents."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.last_blob: Optional[AudioBlob] = None
        self.last_error: Optional[Exception] = None

    def subscribe(self) -> None:
        # pubsub keeps weak references; bound methods live as long as self
        pub.subscribe(self.on_started, TOPIC_STARTED)
        pub.subscribe(self.on_time_updated, TOPIC_TIME_UPDATED)
        pub.subscribe(self.on_finished, TOPIC_FINISHED)
        pub.subscribe(self.on_failed, TOPIC_FAILED)

    def unsubscribe(self) -> None:
        pub.unsubscribe(self.on_started, TOPIC_STARTED)
        pub.unsubscribe(self.on_time_updated, TOPIC_TIME_UPDATED)
        pub.unsubscribe(self.on_finished, TOPIC_FINISHED)
        pub.unsubscribe(self.on_failed, TOPIC_FAILED)

    def on_started(self) -> None:
        self.console.print("🎙️  Recording... (Ctrl-C to stop)", style="bold red")

    def on_time_updated(self, seconds: int) -> None:
        self.console.print(f"⏱️  {format_time(seconds)}", style="cyan")

    def on_finished(self, blob: AudioBlob) -> None:
        self.last_blob = blob
        self.console.print(
            f"✅ Finished: {format_time(blob.duration)} of {blob.media_type} ({blob.size} bytes)",
            style="green")

    def on_failed(self, error: Exception) -> None:
        self.last_error = error
        self.console.print(f"❌ Recording failed: {error}", style="bold red")
