"""Pytest configuration and fixtures for TriageVoice tests."""

import pytest
import tempfile
import logging
from unittest.mock import Mock, patch
import numpy as np


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests of a single component")
    config.addinivalue_line("markers", "integration: tests spanning several components")


class FakeTimerHandle:
    """Handle returned by FakeLoop.call_later."""

    def __init__(self, when, seq, callback, args):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """Deterministic stand-in for the event loop timers, in whole milliseconds."""

    def __init__(self):
        self.now_ms = 0
        self.timers = []
        self._seq = 0

    def time(self):
        return self.now_ms / 1000.0

    def clock(self):
        return float(self.now_ms)

    def call_later(self, delay, callback, *args):
        handle = FakeTimerHandle(self.now_ms + int(round(delay * 1000)), self._seq, callback, args)
        self._seq += 1
        self.timers.append(handle)
        return handle

    def call_soon(self, callback, *args):
        return self.call_later(0, callback, *args)

    @property
    def pending(self):
        return [h for h in self.timers if not h.cancelled]

    def advance(self, ms):
        """Run every timer due within the next ``ms`` milliseconds, in order."""
        target = self.now_ms + ms
        while True:
            due = [h for h in self.timers if not h.cancelled and h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.when, h.seq))
            self.timers.remove(handle)
            self.now_ms = handle.when
            handle.callback(*handle.args)
        self.now_ms = target
        self.timers = [h for h in self.timers if not h.cancelled]

    def advance_to(self, when_ms):
        self.advance(when_ms - self.now_ms)


class FakeSession:
    """In-memory replacement for AudioCaptureSession."""

    def __init__(self, grant=True, bytes_per_read=320, sample_rate=16000, channels=1):
        self.grant = grant
        self.bytes_per_read = bytes_per_read
        self.sample_rate = sample_rate
        self.channels = channels
        self.sample_width = 2
        self.has_permission = None
        self.stream_id = 0
        self.open = False
        self.alive = False
        self.access_requests = 0
        self.discard_calls = 0
        self.released = False

    def request_access(self):
        self.access_requests += 1
        if self.is_live():
            return True
        if not self.grant:
            self.has_permission = False
            return False
        self.open = True
        self.alive = True
        self.stream_id += 1
        self.has_permission = True
        return True

    def is_live(self):
        return self.open and self.alive

    def read_available(self):
        if not self.is_live():
            return b""
        return b"\x01\x00" * (self.bytes_per_read // 2)

    def discard_pending(self):
        self.discard_calls += 1
        return 0

    def release(self):
        self.open = False
        self.released = True


class ScriptedAnalyzer:
    """Level analyzer whose output is a function of the fake clock."""

    def __init__(self, loop, script, stream_id=1):
        self.loop = loop
        self.script = script
        self.stream_id = stream_id
        self.pushed_bytes = 0

    def is_bound_to(self, session):
        return session.is_live() and session.stream_id == self.stream_id

    def push_pcm(self, pcm, channels=1):
        self.pushed_bytes += len(pcm)

    def sample_level(self):
        return float(self.script(self.loop.clock()))


@pytest.fixture
def fake_loop():
    """Fake event loop driving frames and timers."""
    return FakeLoop()


@pytest.fixture
def fake_session():
    """Microphone session that always grants access."""
    return FakeSession()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # Generate 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate  # ~0.064 seconds
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    # Convert to 16-bit integers
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.is_active.return_value = True
        mock_stream.get_read_available.return_value = 1024
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_sample_size.return_value = 2

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def audio_test_data():
    """Generate various audio test data patterns."""
    def generate_audio(pattern="sine", duration_seconds=1.0, sample_rate=16000, amplitude=1.0):
        """Generate audio data for testing.

        Args:
            pattern: Type of audio pattern ('sine', 'noise', 'silence')
            duration_seconds: Duration of audio
            sample_rate: Sample rate in Hz
            amplitude: Peak amplitude, 0-1

        Returns:
            bytes: Audio data as bytes
        """
        samples = int(duration_seconds * sample_rate)

        if pattern == "sine":
            # Generate sine wave
            t = np.linspace(0, duration_seconds, samples, False)
            wave_data = np.sin(2 * np.pi * 440 * t)  # 440 Hz sine wave
        elif pattern == "noise":
            # Generate white noise
            wave_data = np.random.uniform(-1, 1, samples)
        elif pattern == "silence":
            # Generate silence
            wave_data = np.zeros(samples)
        else:
            raise ValueError(f"Unknown pattern: {pattern}")

        # Convert to 16-bit integers
        audio_data = (wave_data * amplitude * 32767).astype(np.int16)
        return audio_data.tobytes()

    return generate_audio


@pytest.fixture
def make_session():
    """Factory for FakeSession instances with custom behavior."""
    return FakeSession


@pytest.fixture
def analyzer_factory(fake_loop):
    """Build an analyzer factory that plays a level script ``f(now_ms) -> level``.

    Every analyzer built is recorded in ``factory.built``.
    """
    def make(script):
        def factory(session):
            analyzer = ScriptedAnalyzer(fake_loop, script, session.stream_id)
            factory.built.append(analyzer)
            return analyzer
        factory.built = []
        return factory
    return make
