"""Audio-related data models."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AudioConstraints:
    """Constraints requested from the input device."""
    sample_size: int = 16  # bits per sample
    channel_count: int = 1
    noise_suppression: bool = False
    echo_cancellation: bool = False
    sample_rate: int = 16000
    input_device_index: Optional[int] = None


@dataclass(frozen=True)
class RecordMediaType:
    """Container negotiated for a capture session."""
    extension: str
    media_type: str
    format: str   # soundfile major format
    subtype: str  # soundfile subtype


@dataclass
class AudioChunk:
    """A slice of PCM emitted by the encoder once per timeslice."""
    sequence_number: int
    data: bytes
    timestamp: float  # Clock time when the chunk was emitted


@dataclass
class AudioBlob:
    """A finalized, duration-corrected segment."""
    data: bytes
    media_type: str
    extension: str
    duration: float  # Seconds, as reported by the container
    sample_rate: int

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def duration_ms(self) -> int:
        return int(round(self.duration * 1000))


@dataclass
class RecordingStats:
    """Snapshot of recorder state."""
    state: str
    is_recording: bool
    is_paused: bool
    elapsed_seconds: int
    segments_finished: int
    session_chunks: int  # Chunks emitted by the current capture session
    media_type: Optional[str] = None
