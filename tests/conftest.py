"""Pytest configuration and fixtures for micrecorder tests."""

import heapq
import itertools
import logging
import threading
from unittest.mock import Mock, patch

import numpy as np
import pytest
from pubsub import pub

from micrecorder.models.audio import RecordMediaType
from micrecorder.models.events import RecordingEvents


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000

WAV_MEDIA_TYPE = RecordMediaType(extension="wav", media_type="audio/wav", format="WAV", subtype="PCM_16")


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without audio hardware")
    config.addinivalue_line("markers", "integration: end-to-end recorder workflows")


class ManualTimer:
    """Handle returned by ManualClock.call_later."""

    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualClock:
    """Deterministic clock; timers only fire inside advance()."""

    def __init__(self, start=0.0):
        self._now = start
        self._timers = []
        self._counter = itertools.count()

    def now(self):
        return self._now

    def call_later(self, delay, callback, *args):
        timer = ManualTimer(self._now + delay, callback, args)
        heapq.heappush(self._timers, (timer.when, next(self._counter), timer))
        return timer

    def advance(self, seconds):
        target = self._now + seconds
        while self._timers and self._timers[0][0] <= target + 1e-9:
            when, _, timer = heapq.heappop(self._timers)
            self._now = max(self._now, when)
            if not timer.cancelled:
                timer.callback(*timer.args)
        self._now = target

    @property
    def pending(self):
        return sum(1 for _, _, timer in self._timers if not timer.cancelled)


class FakeMicrophone:
    """Stands in for MicrophoneStream; tests push PCM with emit()."""

    def __init__(self, constraints=None):
        self.constraints = constraints
        self.sink = None
        self.released = False
        self.release_count = 0
        self.release_thread = None

    def attach(self, sink):
        if self.released:
            raise RuntimeError("Cannot attach to a released microphone stream")
        self.sink = sink

    def detach(self):
        self.sink = None

    def release(self):
        self.released = True
        self.release_count += 1
        self.release_thread = threading.get_ident()
        self.sink = None

    def emit(self, pcm):
        if self.sink is not None:
            self.sink(pcm)


class FakeMicrophoneFactory:
    """Async microphone factory counting acquisitions."""

    def __init__(self):
        self.requests = []
        self.microphones = []
        self.error = None

    async def __call__(self, constraints):
        self.requests.append(constraints)
        if self.error is not None:
            raise self.error
        microphone = FakeMicrophone(constraints)
        self.microphones.append(microphone)
        return microphone


class EventLog(RecordingEvents):
    """Records every event in arrival order."""

    def __init__(self):
        self.events = []
        self.blobs = []
        self.errors = []
        self.time_updates = []

    def on_start(self):
        self.events.append("start")

    def on_time_update(self, seconds):
        self.events.append("time")
        self.time_updates.append(seconds)

    def on_finish(self, blob):
        self.events.append("finish")
        self.blobs.append(blob)

    def on_error(self, error):
        self.events.append("error")
        self.errors.append(error)


@pytest.fixture
def manual_clock():
    return ManualClock()


@pytest.fixture
def microphone_factory():
    return FakeMicrophoneFactory()


@pytest.fixture
def event_log():
    return EventLog()


@pytest.fixture
def wav_only():
    """Force WAV negotiation so decoded durations are sample-exact."""
    with patch('micrecorder.services.recording_service.get_record_media_type',
               return_value=WAV_MEDIA_TYPE) as mock_negotiate:
        yield mock_negotiate


@pytest.fixture
def clean_pubsub():
    yield pub
    pub.unsubAll()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_format_from_width.return_value = 8  # paInt16
        mock_pyaudio_instance.get_default_input_device_info.return_value = {
            'name': 'Test Microphone',
            'maxInputChannels': 1,
        }

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def audio_test_data():
    """Generate various audio test data patterns."""
    def generate_audio(pattern="noise", duration_seconds=1.0, sample_rate=SAMPLE_RATE, value=None):
        """Generate 16-bit PCM for testing.

        Args:
            pattern: 'sine', 'noise', 'silence' or 'constant'
            duration_seconds: Duration of audio
            sample_rate: Sample rate in Hz
            value: Sample value for the 'constant' pattern

        Returns:
            bytes: Audio data as bytes
        """
        samples = int(round(duration_seconds * sample_rate))

        if pattern == "sine":
            t = np.arange(samples) / sample_rate
            wave_data = np.sin(2 * np.pi * 1000 * t)
        elif pattern == "noise":
            wave_data = np.random.default_rng(1234).uniform(-1, 1, samples)
        elif pattern == "silence":
            wave_data = np.zeros(samples)
        elif pattern == "constant":
            return np.full(samples, value, dtype=np.int16).tobytes()
        else:
            raise ValueError(f"Unknown pattern: {pattern}")

        audio_data = (wave_data * 32767).astype(np.int16)
        return audio_data.tobytes()

    return generate_audio
