"""Microphone recorder with silence-triggered auto-stop."""

from .config import RecorderConfig
from .models import AudioBlob, RecordingEvents, RecordingState
from .services import AudioRecorder
from .ui import format_time

__version__ = "0.1.0"

__all__ = [
    "AudioRecorder",
    "AudioBlob",
    "RecorderConfig",
    "RecordingEvents",
    "RecordingState",
    "format_time",
]
