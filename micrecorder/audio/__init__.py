"""Audio capture, analysis and encoding."""

from .analyzer import VolumeAnalyzer
from .clock import LoopClock, ElapsedTimer
from .device import MicrophoneStream, DeviceAcquisitionError
from .encoder import ChunkEncoder, EncodingError, get_record_media_type, build_blob
from .session import CaptureSession
from .silence import SilenceDetector, AutoStopMonitor

__all__ = [
    'VolumeAnalyzer',
    'LoopClock',
    'ElapsedTimer',
    'MicrophoneStream',
    'DeviceAcquisitionError',
    'ChunkEncoder',
    'EncodingError',
    'get_record_media_type',
    'build_blob',
    'CaptureSession',
    'SilenceDetector',
    'AutoStopMonitor',
]
