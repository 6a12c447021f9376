"""Lifecycle states for the recorder, capture session and encoder."""

from enum import Enum


class RecordingState(Enum):
    """Public state of the recording controller."""
    IDLE = "idle"
    ACQUIRING = "acquiring"
    RECORDING = "recording"
    FINALIZING = "finalizing"


class SegmentState(Enum):
    """State of the current segment inside a capture session."""
    IDLE = "idle"  # device open, no segment running
    RECORDING = "recording"
    FINALIZING = "finalizing"
    RELEASED = "released"


class EncoderState(Enum):
    INACTIVE = "inactive"
    RECORDING = "recording"
