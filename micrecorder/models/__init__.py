"""Data models for the micrecorder package."""

from .audio import AudioConstraints, RecordMediaType, AudioChunk, AudioBlob, RecordingStats
from .events import RecordingEvents, CallbackEvents
from .state import RecordingState, SegmentState, EncoderState

__all__ = [
    "AudioConstraints",
    "RecordMediaType",
    "AudioChunk",
    "AudioBlob",
    "RecordingStats",
    "RecordingEvents",
    "CallbackEvents",
    "RecordingState",
    "SegmentState",
    "EncoderState",
]
