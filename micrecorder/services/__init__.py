"""Services for micrecorder."""

from .recording_service import AudioRecorder

__all__ = [
    'AudioRecorder',
]
