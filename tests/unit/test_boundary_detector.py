"""Unit tests for SpeechBoundaryDetector."""

import pytest

from triagevoice.models.recorder import FinalizeReason
from triagevoice.recorder.boundary import BoundaryEvent, BoundaryState, SpeechBoundaryDetector
from triagevoice.recorder.settings import RecorderSettings


@pytest.fixture
def detector():
    settings = RecorderSettings(
        silence_threshold=20,
        silence_duration_ms=500,
        min_speaking_duration_ms=200,
        max_recording_ms=12000,
        min_blob_bytes=500,
    )
    return SpeechBoundaryDetector(settings)


@pytest.mark.unit
class TestSpeechBoundaryDetector:
    """Test cases for the quiet/speaking state machine."""

    def test_initial_state(self, detector):
        assert detector.state is BoundaryState.QUIET
        assert detector.is_speaking is False
        assert detector.silence_pending is False
        assert detector.timing.speech_started_at is None

    def test_quiet_levels_do_nothing(self, detector):
        for t in range(0, 100, 10):
            assert detector.process_level(5.0, t) is BoundaryEvent.NONE
        assert detector.state is BoundaryState.QUIET

    def test_threshold_is_strict(self, detector):
        """A level equal to the threshold is still silence."""
        assert detector.process_level(20.0, 0) is BoundaryEvent.NONE
        assert detector.process_level(20.1, 10) is BoundaryEvent.SPEECH_STARTED

    def test_speech_start_records_time(self, detector):
        assert detector.process_level(40.0, 100) is BoundaryEvent.SPEECH_STARTED
        assert detector.is_speaking
        assert detector.timing.speech_started_at == 100

        # Further loud samples change nothing
        assert detector.process_level(40.0, 110) is BoundaryEvent.NONE
        assert detector.timing.speech_started_at == 100

    def test_silence_armed_once(self, detector):
        detector.process_level(40.0, 100)
        assert detector.process_level(0.0, 300) is BoundaryEvent.SILENCE_ARMED
        assert detector.timing.silence_started_at == 300

        # Still silent: the pending silence keeps its original start
        assert detector.process_level(0.0, 310) is BoundaryEvent.NONE
        assert detector.timing.silence_started_at == 300

    def test_speech_cancels_pending_silence(self, detector):
        detector.process_level(40.0, 100)
        detector.process_level(0.0, 300)
        assert detector.process_level(40.0, 400) is BoundaryEvent.SILENCE_CANCELLED
        assert detector.silence_pending is False
        assert detector.process_level(0.0, 600) is BoundaryEvent.SILENCE_ARMED
        assert detector.timing.silence_started_at == 600

    def test_timeout_checked_before_level(self, detector):
        detector.process_level(40.0, 0)
        assert detector.process_level(40.0, 11990) is BoundaryEvent.NONE
        assert detector.process_level(40.0, 12000) is BoundaryEvent.TIMEOUT
        # Timeout wins even over a silence transition
        assert detector.process_level(0.0, 12010) is BoundaryEvent.TIMEOUT

    def test_speaking_duration_ends_at_silence_start(self, detector):
        detector.process_level(40.0, 100)
        assert detector.speaking_duration(250) == 150
        detector.process_level(0.0, 300)
        assert detector.speaking_duration(800) == 200

    def test_finalize_returns_summary_and_resets(self, detector):
        detector.process_level(40.0, 100)
        detector.process_level(0.0, 300)

        summary = detector.finalize(800, FinalizeReason.SILENCE)

        assert summary.reason is FinalizeReason.SILENCE
        assert summary.speech_started_at == 100
        assert summary.finalized_at == 800
        assert summary.speaking_duration_ms == 200
        assert detector.state is BoundaryState.QUIET
        assert detector.timing.speech_started_at is None
        assert detector.timing.silence_started_at is None

    def test_finalize_without_speech(self, detector):
        assert detector.finalize(500, FinalizeReason.SILENCE) is None
        assert detector.state is BoundaryState.QUIET

    def test_finalize_twice_yields_one_summary(self, detector):
        detector.process_level(40.0, 100)
        assert detector.finalize(1000, FinalizeReason.TIMEOUT) is not None
        assert detector.finalize(1000, FinalizeReason.TIMEOUT) is None

    @pytest.mark.parametrize("duration,blob_size,expected", [
        (200, 501, True),
        (199, 5000, False),
        (1000, 500, False),
        (1000, 44, False),
    ])
    def test_acceptance_floor(self, detector, duration, blob_size, expected):
        detector.process_level(40.0, 0)
        detector.process_level(0.0, duration)
        summary = detector.finalize(duration + 500, FinalizeReason.SILENCE)
        assert detector.accepts(summary, blob_size) is expected

    def test_reset(self, detector):
        detector.process_level(40.0, 100)
        detector.process_level(0.0, 200)
        detector.reset()
        assert detector.state is BoundaryState.QUIET
        assert detector.silence_pending is False
