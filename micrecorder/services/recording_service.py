"""Recording controller: public state, device acquisition and lifecycle callbacks."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..audio.clock import ElapsedTimer, LoopClock
from ..audio.device import DeviceAcquisitionError, MicrophoneStream
from ..audio.encoder import MEDIA_TYPE_PREFERENCES, get_record_media_type
from ..audio.session import CaptureSession
from ..config import RecorderConfig
from ..models.audio import AudioBlob, AudioConstraints, RecordingStats, RecordMediaType
from ..models.events import CallbackEvents, RecordingEvents
from ..models.state import RecordingState
from ..ui.display import format_time

logger = logging.getLogger(__name__)

MicrophoneFactory = Callable[[AudioConstraints], Awaitable[MicrophoneStream]]


class AudioRecorder:
    """Records microphone input into duration-corrected blobs.

    Typical use inside a running event loop::

        recorder = AudioRecorder(RecorderConfig(auto_stop=True), on_finish=save)
        await recorder.start()
        ...
        await recorder.stop()

    Events go to ``events`` (a RecordingEvents) or to the keyword callbacks,
    not both. A recorder whose last segment was paused (explicitly or by
    silence) keeps its microphone, and the next ``start()`` reuses it.
    """

    def __init__(
        self,
        config: Optional[RecorderConfig] = None,
        events: Optional[RecordingEvents] = None,
        *,
        on_start: Optional[Callable[[], None]] = None,
        on_time_update: Optional[Callable[[int], None]] = None,
        on_finish: Optional[Callable[[AudioBlob], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        microphone_factory: Optional[MicrophoneFactory] = None,
        clock=None,
    ):
        callbacks = (on_start, on_time_update, on_finish, on_error)
        if events is not None and any(callback is not None for callback in callbacks):
            raise ValueError("Pass either an events object or callbacks, not both")

        self.config = config or RecorderConfig()
        self.events = events if events is not None else CallbackEvents(*callbacks)
        self.clock = clock or LoopClock()
        self.microphone_factory = microphone_factory or self._acquire_microphone
        self.timer = ElapsedTimer(self.clock, self._on_tick)

        self._state = RecordingState.IDLE
        self._session: Optional[CaptureSession] = None
        self._cancel_acquisition = False
        self._segments_finished = 0

    @staticmethod
    def get_record_media_type() -> RecordMediaType:
        return get_record_media_type(MEDIA_TYPE_PREFERENCES)

    @staticmethod
    def format_time(seconds: float) -> str:
        return format_time(seconds)

    @property
    def state(self) -> RecordingState:
        return self._state

    @property
    def time(self) -> int:
        """Whole seconds elapsed in the current segment."""
        return self.timer.seconds

    @property
    def is_recording(self) -> bool:
        return self._state is RecordingState.RECORDING

    @property
    def is_paused(self) -> bool:
        return (self._state is RecordingState.IDLE
                and self._session is not None and not self._session.released)

    @property
    def media_type(self) -> Optional[RecordMediaType]:
        return self._session.media_type if self._session is not None else None

    async def start(self) -> None:
        """Start a new segment, acquiring the microphone if needed.

        Waits for any in-flight finalize first. Device failures go to
        ``on_error`` and leave the recorder idle.
        """
        if self._state in (RecordingState.ACQUIRING, RecordingState.RECORDING):
            logger.warning(f"Start ignored: recorder is {self._state.value}")
            return

        if self._session is not None:
            await self._session.wait_finalized()
            if self._state is not RecordingState.IDLE:
                logger.warning(f"Start ignored: recorder is {self._state.value}")
                return

        if self._session is None or self._session.released:
            self._session = None
            if not await self._open_session():
                return

        self._session.start_segment()

    async def pause(self) -> None:
        """End the current segment but keep the microphone open."""
        if self._session is None:
            return
        await self._end_segment(release=False)

    async def stop(self) -> None:
        """End the current segment and release the microphone. No-op without a session."""
        if self._state is RecordingState.ACQUIRING:
            self._cancel_acquisition = True
            return
        if self._session is None:
            return
        await self._end_segment(release=True)

    async def wait_finalized(self) -> None:
        """Wait for an in-flight finalize, e.g. after a silence-triggered stop."""
        if self._session is not None:
            await self._session.wait_finalized()

    def get_recording_stats(self) -> RecordingStats:
        session = self._session
        return RecordingStats(
            state=self._state.value,
            is_recording=self.is_recording,
            is_paused=self.is_paused,
            elapsed_seconds=self.time,
            segments_finished=self._segments_finished,
            session_chunks=session.encoder.total_chunks if session else 0,
            media_type=session.media_type.media_type if session else None,
        )

    async def _open_session(self) -> bool:
        self._state = RecordingState.ACQUIRING
        self._cancel_acquisition = False
        try:
            microphone = await self.microphone_factory(self.config.constraints())
        except DeviceAcquisitionError as e:
            logger.error(f"Microphone acquisition failed: {e}")
            self._state = RecordingState.IDLE
            self.events.on_error(e)
            return False
        except BaseException:
            self._state = RecordingState.IDLE
            raise

        if self._cancel_acquisition:
            logger.info("Stop requested while acquiring; releasing microphone")
            try:
                await asyncio.get_running_loop().run_in_executor(None, microphone.release)
            finally:
                self._state = RecordingState.IDLE
            return False

        media_type = self.get_record_media_type()
        logger.info(f"Negotiated media type: {media_type.media_type}")
        self._session = CaptureSession(
            microphone,
            self.config,
            self.clock,
            media_type,
            on_segment_start=self._on_segment_start,
            on_finish=self._on_finish,
            on_error=self.events.on_error,
            on_auto_stop=self._on_auto_stop,
            on_finalized=self._on_finalized,
        )
        self._state = RecordingState.IDLE
        return True

    async def _end_segment(self, release: bool) -> None:
        session = self._session
        if session.recording:
            self._leave_recording()
        finalizing = session.end_segment(release=release)
        await finalizing
        if session.released and self._session is session:
            self._session = None
            self._state = RecordingState.IDLE

    def _leave_recording(self) -> None:
        self._state = RecordingState.FINALIZING
        self.timer.stop()

    async def _acquire_microphone(self, constraints: AudioConstraints) -> MicrophoneStream:
        return await MicrophoneStream.acquire(constraints, frames_per_buffer=self.config.frames_per_buffer)

    def _on_segment_start(self) -> None:
        self._state = RecordingState.RECORDING
        self.timer.start()
        self.events.on_start()

    def _on_tick(self, seconds: int) -> None:
        self.events.on_time_update(seconds)

    def _on_auto_stop(self) -> None:
        self._leave_recording()

    def _on_finish(self, blob: AudioBlob) -> None:
        self._segments_finished += 1
        self.events.on_finish(blob)

    def _on_finalized(self) -> None:
        if self._state is RecordingState.FINALIZING:
            self._state = RecordingState.IDLE
