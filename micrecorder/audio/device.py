"""Microphone acquisition and the live pyaudio input stream."""

import asyncio
import logging
from typing import Callable, Optional

import pyaudio

from ..models.audio import AudioConstraints

logger = logging.getLogger(__name__)


class DeviceAcquisitionError(RuntimeError):
    """Microphone access was denied, missing, or cannot meet the constraints."""


class MicrophoneStream:
    """An open pyaudio input stream that delivers PCM frames on the event loop.

    PortAudio calls back on its own thread; each buffer is handed to the
    loop with ``call_soon_threadsafe`` so frames reach the sink in the order
    the device produced them. Frames arriving with no sink attached are
    dropped. ``release()`` is final: a released stream cannot be reopened.
    """

    def __init__(self, constraints: AudioConstraints, frames_per_buffer: int = 1024):
        self.constraints = constraints
        self.frames_per_buffer = frames_per_buffer
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None
        self.released = False
        self.total_frames = 0
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._sink: Optional[Callable[[bytes], None]] = None

    @classmethod
    async def acquire(cls, constraints: AudioConstraints, frames_per_buffer: int = 1024) -> "MicrophoneStream":
        """Open the input device without blocking the loop.

        Raises:
            DeviceAcquisitionError: for any device or constraint failure
        """
        microphone = cls(constraints, frames_per_buffer)
        microphone._loop = asyncio.get_running_loop()
        await microphone._loop.run_in_executor(None, microphone._open)
        return microphone

    def _open(self) -> None:
        check_constraints(self.constraints)
        try:
            self.pyaudio_instance = pyaudio.PyAudio()
            device_info = self._input_device_info()
            if device_info.get("maxInputChannels", 0) < self.constraints.channel_count:
                raise DeviceAcquisitionError(
                    f"Input device '{device_info.get('name')}' cannot provide "
                    f"{self.constraints.channel_count} channel(s)")
            self.stream = self.pyaudio_instance.open(
                format=self.pyaudio_instance.get_format_from_width(self.constraints.sample_size // 8),
                channels=self.constraints.channel_count,
                rate=self.constraints.sample_rate,
                input=True,
                input_device_index=self.constraints.input_device_index,
                frames_per_buffer=self.frames_per_buffer,
                stream_callback=self._stream_callback,
            )
        except DeviceAcquisitionError:
            self._terminate()
            raise
        except (OSError, ValueError) as e:
            self._terminate()
            raise DeviceAcquisitionError(f"Could not open microphone: {e}") from e

        logger.info(f"Microphone opened: {device_info.get('name')}, {self.constraints.sample_rate}Hz, "
                    f"{self.constraints.channel_count} channel(s), {self.constraints.sample_size}-bit")

    def _input_device_info(self) -> dict:
        try:
            if self.constraints.input_device_index is None:
                return self.pyaudio_instance.get_default_input_device_info()
            return self.pyaudio_instance.get_device_info_by_index(self.constraints.input_device_index)
        except (OSError, ValueError) as e:
            raise DeviceAcquisitionError(f"No microphone available: {e}") from e

    def _stream_callback(self, in_data, frame_count, time_info, status):
        if status:
            logger.debug(f"Input stream status flags: {status}")
        # The sink is bound here so buffers queued before a detach still drain
        sink = self._sink
        loop = self._loop
        if sink is not None and loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self._deliver, sink, in_data)
        return (None, pyaudio.paContinue)

    def _deliver(self, sink: Callable[[bytes], None], data: bytes) -> None:
        self.total_frames += 1
        sink(data)

    def attach(self, sink: Callable[[bytes], None]) -> None:
        if self.released:
            raise RuntimeError("Cannot attach to a released microphone stream")
        self._sink = sink

    def detach(self) -> None:
        self._sink = None

    def release(self) -> None:
        """Stop and close the stream and free the device. Idempotent."""
        if self.released:
            return
        self._sink = None
        self.released = True
        if self.stream is not None:
            try:
                self.stream.stop_stream()
                self.stream.close()
            finally:
                self.stream = None
                self._terminate()
        else:
            self._terminate()
        logger.info(f"Microphone released after {self.total_frames} buffers")

    def _terminate(self) -> None:
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None


def check_constraints(constraints: AudioConstraints) -> None:
    """Reject constraints pyaudio cannot honour.

    PortAudio hands over the raw signal, so noise suppression and echo
    cancellation can only be off.
    """
    if constraints.noise_suppression:
        raise DeviceAcquisitionError("Noise suppression is not available on raw input streams")
    if constraints.echo_cancellation:
        raise DeviceAcquisitionError("Echo cancellation is not available on raw input streams")
    if constraints.sample_size != 16:
        raise DeviceAcquisitionError(f"Unsupported sample size: {constraints.sample_size} bits")
    if constraints.channel_count < 1:
        raise DeviceAcquisitionError(f"Invalid channel count: {constraints.channel_count}")
