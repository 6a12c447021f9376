"""Chunked encoder, container negotiation and duration-corrected finalize."""

import io
import logging
from typing import Callable, Iterable, Sequence

import numpy as np
import soundfile as sf

from ..models.audio import AudioBlob, AudioChunk, RecordMediaType
from ..models.state import EncoderState

logger = logging.getLogger(__name__)


# Ordered by preference; the last entry is the fallback.
MEDIA_TYPE_PREFERENCES = (
    RecordMediaType(extension="ogg", media_type="audio/ogg", format="OGG", subtype="VORBIS"),
    RecordMediaType(extension="wav", media_type="audio/wav", format="WAV", subtype="PCM_16"),
)


class EncodingError(RuntimeError):
    """The accumulated segment could not be encoded into a blob."""


def get_record_media_type(preferences: Sequence[RecordMediaType] = MEDIA_TYPE_PREFERENCES) -> RecordMediaType:
    """Pick the first container the local libsndfile can write.

    An unsupported container is not an error; the last preference is
    returned when nothing else is available.
    """
    if not preferences:
        raise ValueError("At least one media type preference is required")
    for candidate in preferences:
        if sf.check_format(candidate.format, candidate.subtype):
            return candidate
        logger.debug(f"{candidate.media_type} ({candidate.format}/{candidate.subtype}) not supported")
    return preferences[-1]


class ChunkEncoder:
    """Accumulates PCM and emits one chunk per timeslice.

    Chunks are handed to ``on_chunk`` in emission order. ``stop()`` flushes
    whatever is pending as the final chunk. Only the first ``stop()`` of a
    segment returns True.
    """

    def __init__(self, clock, on_chunk: Callable[[AudioChunk], None], timeslice: float = 1.0):
        self.clock = clock
        self.on_chunk = on_chunk
        self.timeslice = timeslice
        self.state = EncoderState.INACTIVE
        self.total_chunks = 0
        self._pending = bytearray()
        self._sequence = 0
        self._timer = None

    def start(self) -> bool:
        if self.state is EncoderState.RECORDING:
            logger.warning("Encoder already recording")
            return False
        self.state = EncoderState.RECORDING
        self._pending.clear()
        self._sequence = 0
        self._timer = self.clock.call_later(self.timeslice, self._on_timeslice)
        return True

    def write(self, pcm: bytes) -> bool:
        if self.state is not EncoderState.RECORDING:
            return False
        self._pending.extend(pcm)
        return True

    def stop(self) -> bool:
        if self.state is not EncoderState.RECORDING:
            return False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._emit()
        self.state = EncoderState.INACTIVE
        return True

    def _on_timeslice(self) -> None:
        self._timer = None
        if self.state is not EncoderState.RECORDING:
            return
        self._emit()
        self._timer = self.clock.call_later(self.timeslice, self._on_timeslice)

    def _emit(self) -> None:
        if not self._pending:
            return
        chunk = AudioChunk(
            sequence_number=self._sequence,
            data=bytes(self._pending),
            timestamp=self.clock.now(),
        )
        self._pending.clear()
        self._sequence += 1
        self.total_chunks += 1
        logger.debug(f"Encoder emitted chunk {chunk.sequence_number}: {len(chunk.data)} bytes")
        self.on_chunk(chunk)


def correct_duration(samples: np.ndarray, duration: float, sample_rate: int) -> np.ndarray:
    """Conform samples to ``duration`` seconds.

    Dropped device frames leave the stream short and clock skew can leave
    it long; missing time is padded with trailing silence and excess is
    trimmed so the container reports wall-clock duration.
    """
    target = max(0, int(round(duration * sample_rate)))
    if len(samples) < target:
        padding = np.zeros(target - len(samples), dtype=samples.dtype)
        return np.concatenate([samples, padding])
    return samples[:target]


def build_blob(
    chunks: Iterable[AudioChunk],
    media_type: RecordMediaType,
    sample_rate: int,
    duration: float,
) -> AudioBlob:
    """Concatenate chunks in order, correct the duration and encode.

    Raises:
        EncodingError: if soundfile cannot produce the container
    """
    pcm = b"".join(chunk.data for chunk in chunks)
    pcm = pcm[:len(pcm) - len(pcm) % 2]
    samples = correct_duration(np.frombuffer(pcm, dtype=np.int16), duration, sample_rate)

    buffer = io.BytesIO()
    try:
        sf.write(buffer, samples, sample_rate, format=media_type.format, subtype=media_type.subtype)
    except (RuntimeError, TypeError, ValueError) as e:
        raise EncodingError(f"Failed to encode {media_type.media_type}: {e}") from e

    blob = AudioBlob(
        data=buffer.getvalue(),
        media_type=media_type.media_type,
        extension=media_type.extension,
        duration=len(samples) / sample_rate,
        sample_rate=sample_rate,
    )
    logger.info(f"Built {blob.media_type} blob: {blob.size} bytes, {blob.duration:.3f}s "
                f"({len(pcm) // 2} captured samples)")
    return blob
