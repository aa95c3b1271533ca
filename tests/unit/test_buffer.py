"""Unit tests for the pre-roll and utterance buffers."""

import pytest

from triagevoice.audio.buffer import RecordingBuffer, RollingAudioBuffer


@pytest.mark.unit
class TestRollingAudioBuffer:
    """Test cases for RollingAudioBuffer."""

    def test_capacity(self):
        buffer = RollingAudioBuffer(duration_ms=200, sample_rate=16000)
        assert buffer.max_buffer_bytes == 6400

    def test_keeps_everything_below_capacity(self):
        buffer = RollingAudioBuffer(duration_ms=200)
        buffer.add_audio_chunk(b'\x01\x00' * 100)
        buffer.add_audio_chunk(b'\x02\x00' * 100)

        assert buffer.total_bytes == 400
        assert buffer.drain() == b'\x01\x00' * 100 + b'\x02\x00' * 100
        assert buffer.total_bytes == 0

    def test_drops_oldest_audio(self):
        buffer = RollingAudioBuffer(duration_ms=10)  # 320 bytes
        buffer.add_audio_chunk(b'\x01\x00' * 100)
        buffer.add_audio_chunk(b'\x02\x00' * 100)

        audio = buffer.drain()

        assert len(audio) == 320
        assert audio.endswith(b'\x02\x00' * 100)
        assert audio.startswith(b'\x01\x00')

    def test_trims_on_sample_boundary(self):
        buffer = RollingAudioBuffer(duration_ms=10)  # 320 bytes
        buffer.add_audio_chunk(b'\x01\x02' * 160)
        buffer.add_audio_chunk(b'\x03')  # odd-sized chunk forces an odd overflow

        audio = buffer.drain()

        assert len(audio) <= 320
        assert audio[:2] == b'\x01\x02'

    def test_ignores_empty_chunks(self):
        buffer = RollingAudioBuffer(duration_ms=200)
        buffer.add_audio_chunk(b'')
        assert buffer.total_bytes == 0
        assert len(buffer.buffer) == 0

    def test_zero_duration_keeps_nothing(self):
        buffer = RollingAudioBuffer(duration_ms=0)
        buffer.add_audio_chunk(b'\x01\x00' * 100)
        assert buffer.drain() == b''

    def test_clear(self):
        buffer = RollingAudioBuffer(duration_ms=200)
        buffer.add_audio_chunk(b'\x01\x00' * 100)
        buffer.clear()
        assert buffer.total_bytes == 0
        assert buffer.drain() == b''


@pytest.mark.unit
class TestRecordingBuffer:
    """Test cases for RecordingBuffer."""

    def test_initial_state(self):
        buffer = RecordingBuffer()
        assert buffer.is_empty
        assert len(buffer) == 0
        assert buffer.first_timestamp is None

    def test_append_in_order(self):
        buffer = RecordingBuffer()
        buffer.append(b'ab', 100.0)
        buffer.append(b'cd', 110.0)

        assert len(buffer) == 2
        assert buffer.total_bytes == 4
        assert buffer.first_timestamp == 100.0
        assert [f.frame_number for f in buffer.frames] == [0, 1]
        assert buffer.drain() == b'abcd'

    def test_empty_chunks_are_skipped(self):
        buffer = RecordingBuffer()
        buffer.append(b'', 100.0)
        assert buffer.is_empty

    def test_drain_clears(self):
        buffer = RecordingBuffer()
        buffer.append(b'ab', 100.0)
        buffer.drain()

        assert buffer.is_empty
        assert buffer.total_bytes == 0
        assert buffer.frame_counter == 0
        assert buffer.drain() == b''
