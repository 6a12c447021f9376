"""Capture session: one device stream, its chunk buffer and segment lifecycle."""

import asyncio
import logging
from typing import Callable, List, Optional

from ..models.audio import AudioBlob, AudioChunk, RecordMediaType
from ..models.state import SegmentState
from .analyzer import VolumeAnalyzer
from .encoder import ChunkEncoder, EncodingError, build_blob
from .silence import AutoStopMonitor

logger = logging.getLogger(__name__)


class CaptureSession:
    """Bridges a live microphone stream to the encoder and finalizes segments.

    A session owns the stream until it is released. Each segment runs from
    ``start_segment()`` to ``end_segment()``; ending with ``release=False``
    is a pause and keeps the device open for the next segment. Finalizing
    is asynchronous and a new segment cannot start until it is done.
    """

    def __init__(
        self,
        microphone,
        config,
        clock,
        media_type: RecordMediaType,
        on_segment_start: Callable[[], None],
        on_finish: Callable[[AudioBlob], None],
        on_error: Callable[[Exception], None],
        on_auto_stop: Callable[[], None],
        on_finalized: Callable[[], None],
    ):
        self.microphone = microphone
        self.config = config
        self.clock = clock
        self.media_type = media_type

        self._on_segment_start = on_segment_start
        self._on_finish = on_finish
        self._on_error = on_error
        self._on_auto_stop = on_auto_stop
        self._on_finalized = on_finalized

        self.state = SegmentState.IDLE
        self.generation = 0
        self.segments_finished = 0
        self.chunks: List[AudioChunk] = []
        self.segment_started_at: Optional[float] = None

        self.encoder = ChunkEncoder(clock, self._on_chunk, timeslice=config.timeslice_ms / 1000.0)
        self.analyzer = VolumeAnalyzer(
            fft_size=config.fft_size,
            smoothing_time_constant=config.smoothing_time_constant,
            min_decibels=config.min_decibels,
            max_decibels=config.max_decibels,
        )
        self.monitor: Optional[AutoStopMonitor] = None
        self._finalizing: Optional[asyncio.Task] = None
        self._release_requested = False

    @property
    def released(self) -> bool:
        return self.state is SegmentState.RELEASED

    @property
    def recording(self) -> bool:
        return self.state is SegmentState.RECORDING

    def start_segment(self) -> bool:
        """Begin a new segment. Returns False when the session is not idle."""
        if self.state is not SegmentState.IDLE:
            logger.warning(f"Cannot start a segment while session is {self.state.value}")
            return False

        self.generation += 1
        self.chunks = []
        self.analyzer.reset()
        self.state = SegmentState.RECORDING
        self.segment_started_at = self.clock.now()
        self.microphone.attach(self._on_frame)
        self.encoder.start()

        if self.config.auto_stop:
            generation = self.generation
            self.monitor = AutoStopMonitor(
                self.clock,
                self.analyzer,
                lambda: self._handle_silence(generation),
                volume_threshold=self.config.volume_threshold,
                silence_threshold=self.config.silence_threshold,
                frame_interval=self.config.frame_interval_ms / 1000.0,
            )
            self.monitor.start()

        logger.info(f"Segment {self.generation} started ({self.media_type.media_type}, "
                    f"auto_stop={self.config.auto_stop})")
        self._on_segment_start()
        return True

    def end_segment(self, release: bool) -> "asyncio.Future[None]":
        """Finalize the running segment, or release an idle session.

        The first caller to reach a recording segment wins; later callers get
        the in-flight finalize. ``release=True`` from a later caller still
        releases the device once that finalize completes.
        """
        if self.state is SegmentState.RECORDING:
            ended_at = self.clock.now()
            self.state = SegmentState.FINALIZING
            self._release_requested = release
            if self.monitor is not None:
                self.monitor.halt()
            self.microphone.detach()
            self._finalizing = asyncio.get_running_loop().create_task(self._finalize(ended_at))
            return self._finalizing

        if self.state is SegmentState.FINALIZING:
            self._release_requested = self._release_requested or release
            return self._finalizing

        if release and self.state is SegmentState.IDLE:
            self.state = SegmentState.RELEASED
            self._finalizing = asyncio.get_running_loop().create_task(self._release())
            return self._finalizing
        return self._completed()

    async def wait_finalized(self) -> None:
        if self._finalizing is not None and not self._finalizing.done():
            await asyncio.shield(self._finalizing)

    def _on_frame(self, pcm: bytes) -> None:
        if self.encoder.write(pcm):
            self.analyzer.push_pcm(pcm)

    def _on_chunk(self, chunk: AudioChunk) -> None:
        self.chunks.append(chunk)

    def _handle_silence(self, generation: int) -> None:
        if generation != self.generation or self.state is not SegmentState.RECORDING:
            logger.debug(f"Ignoring silence from stale segment {generation}")
            return
        logger.info(f"Auto-stopping segment {generation} after silence")
        self.end_segment(release=False)
        self._on_auto_stop()

    async def _finalize(self, ended_at: float) -> None:
        generation = self.generation
        try:
            # Let frames already queued on the loop reach the encoder
            await asyncio.sleep(0)
            self.encoder.stop()

            duration = ended_at - self.segment_started_at
            chunks, self.chunks = self.chunks, []
            loop = asyncio.get_running_loop()
            try:
                blob = await loop.run_in_executor(
                    None, build_blob, chunks, self.media_type, self.config.sample_rate, duration)
            except EncodingError as e:
                logger.error(f"Segment {generation} failed to encode: {e}")
                self._on_error(e)
            else:
                self.segments_finished += 1
                logger.info(f"Segment {generation} finalized: {len(chunks)} chunks, {duration:.3f}s")
                self._on_finish(blob)
        finally:
            self.segment_started_at = None
            self.monitor = None
            try:
                if self._release_requested:
                    self.state = SegmentState.RELEASED
                    await self._release()
                else:
                    self.state = SegmentState.IDLE
            finally:
                self._on_finalized()

    async def _release(self) -> None:
        # pyaudio teardown blocks until the stream drains
        await asyncio.get_running_loop().run_in_executor(None, self.microphone.release)
        logger.info("Capture session released")

    @staticmethod
    def _completed() -> "asyncio.Future[None]":
        future = asyncio.get_running_loop().create_future()
        future.set_result(None)
        return future
