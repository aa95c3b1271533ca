"""Unit tests for LevelAnalyzer."""

import numpy as np
import pytest

from triagevoice.audio.analyzer import LevelAnalyzer


@pytest.mark.unit
class TestLevelAnalyzer:
    """Test cases for the frequency-domain energy estimate."""

    def test_initialization(self):
        analyzer = LevelAnalyzer()

        assert analyzer.fft_size == 256
        assert analyzer.frequency_bin_count == 128
        assert analyzer.smoothing_time_constant == 0.8
        assert len(analyzer.frequency_data) == 128
        assert analyzer.frequency_data.dtype == np.uint8

    @pytest.mark.parametrize("fft_size", [0, 16, 100, 255])
    def test_invalid_fft_size(self, fft_size):
        with pytest.raises(ValueError):
            LevelAnalyzer(fft_size=fft_size)

    def test_only_16_bit_supported(self):
        with pytest.raises(ValueError):
            LevelAnalyzer(sample_width=3)

    def test_decibel_range_validated(self):
        with pytest.raises(ValueError):
            LevelAnalyzer(min_decibels=-30, max_decibels=-100)

    def test_silence_is_zero(self, audio_test_data):
        analyzer = LevelAnalyzer()
        analyzer.push_pcm(audio_test_data("silence", duration_seconds=0.05))

        assert analyzer.sample_level() == 0.0
        assert not analyzer.frequency_data.any()

    def test_no_audio_is_zero(self):
        assert LevelAnalyzer().sample_level() == 0.0

    def test_noise_is_loud(self, audio_test_data):
        np.random.seed(0)
        analyzer = LevelAnalyzer()
        analyzer.push_pcm(audio_test_data("noise", duration_seconds=0.05, amplitude=0.5))

        level = analyzer.sample_level()

        assert 100.0 < level <= 255.0

    def test_level_is_mean_of_frequency_data(self, audio_test_data):
        np.random.seed(1)
        analyzer = LevelAnalyzer()
        analyzer.push_pcm(audio_test_data("noise", duration_seconds=0.05, amplitude=0.2))

        level = analyzer.sample_level()

        assert level == pytest.approx(float(analyzer.frequency_data.mean()))

    def test_smoothing_carries_energy_forward(self, audio_test_data):
        np.random.seed(2)
        analyzer = LevelAnalyzer()
        analyzer.push_pcm(audio_test_data("noise", duration_seconds=0.05, amplitude=0.5))
        loud = analyzer.sample_level()

        analyzer.push_pcm(audio_test_data("silence", duration_seconds=0.05))
        decaying = analyzer.sample_level()

        assert 0.0 < decaying < loud

    def test_no_smoothing_drops_immediately(self, audio_test_data):
        np.random.seed(3)
        analyzer = LevelAnalyzer(smoothing_time_constant=0.0)
        analyzer.push_pcm(audio_test_data("noise", duration_seconds=0.05, amplitude=0.5))
        assert analyzer.sample_level() > 0.0

        analyzer.push_pcm(audio_test_data("silence", duration_seconds=0.05))
        assert analyzer.sample_level() == 0.0

    def test_short_chunk_fills_window_partially(self, audio_test_data):
        np.random.seed(4)
        analyzer = LevelAnalyzer()
        analyzer.push_pcm(audio_test_data("noise", duration_seconds=0.004, amplitude=0.5))  # 64 samples

        assert analyzer.sample_level() > 0.0

    def test_reset(self, audio_test_data):
        np.random.seed(5)
        analyzer = LevelAnalyzer()
        analyzer.push_pcm(audio_test_data("noise", duration_seconds=0.05, amplitude=0.5))
        analyzer.sample_level()

        analyzer.reset()

        assert analyzer.sample_level() == 0.0

    def test_stereo_is_downmixed(self):
        analyzer = LevelAnalyzer()
        # Left and right cancel out exactly
        frames = np.array([[16000, -16000]] * 512, dtype=np.int16)
        analyzer.push_pcm(frames.tobytes(), channels=2)

        assert analyzer.sample_level() == 0.0

    def test_for_session_binds_stream(self, make_session):
        session = make_session()
        session.request_access()

        analyzer = LevelAnalyzer.for_session(session, fft_size=512, smoothing_time_constant=0.5)

        assert analyzer.fft_size == 512
        assert analyzer.smoothing_time_constant == 0.5
        assert analyzer.stream_id == session.stream_id
        assert analyzer.is_bound_to(session)

    def test_not_bound_after_stream_reopened(self, make_session):
        session = make_session()
        session.request_access()
        analyzer = LevelAnalyzer.for_session(session)

        session.alive = False
        assert not analyzer.is_bound_to(session)

        session.request_access()
        assert session.is_live()
        assert not analyzer.is_bound_to(session)
