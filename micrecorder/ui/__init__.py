"""Console presentation helpers."""

from .display import format_time, RecordingDisplay

__all__ = ['format_time', 'RecordingDisplay']
