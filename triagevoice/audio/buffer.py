"""Audio buffers used while listening: the pre-roll ring and the utterance buffer."""

import logging
from collections import deque
from typing import List, Optional
from ..models.audio import AudioFrame

logger = logging.getLogger(__name__)


class RollingAudioBuffer:
    """Rolling audio buffer that keeps only the most recent audio.

    Used as the pre-roll while nobody is speaking, so the start of an
    utterance is not clipped when the energy threshold is crossed a frame
    late.
    """

    def __init__(self, duration_ms: float, sample_rate: int = 16000,
                 channels: int = 1, sample_width: int = 2):
        """Initialize rolling audio buffer.

        Args:
            duration_ms: How many milliseconds of audio to keep in buffer
            sample_rate: Audio sample rate
            channels: Number of audio channels
            sample_width: Bytes per sample
        """
        self.duration_ms = duration_ms
        self.sample_rate = sample_rate
        self.channels = channels
        self.bytes_per_sample = sample_width

        # Calculate buffer capacity
        self.bytes_per_second = sample_rate * channels * self.bytes_per_sample
        self.max_buffer_bytes = int(self.bytes_per_second * duration_ms / 1000.0)

        self.buffer = deque()
        self.total_bytes = 0

    def add_audio_chunk(self, audio_data: bytes) -> None:
        """Add audio chunk to the rolling buffer, dropping the oldest audio."""
        if not audio_data or self.max_buffer_bytes <= 0:
            return

        self.buffer.append(audio_data)
        self.total_bytes += len(audio_data)

        # Remove old chunks to maintain buffer size
        while self.total_bytes > self.max_buffer_bytes and self.buffer:
            overflow = self.total_bytes - self.max_buffer_bytes
            oldest = self.buffer[0]
            if len(oldest) <= overflow:
                self.buffer.popleft()
                self.total_bytes -= len(oldest)
            else:
                # Trim on a frame boundary so samples stay aligned
                frame_bytes = self.channels * self.bytes_per_sample
                cut = -(-overflow // frame_bytes) * frame_bytes
                self.buffer[0] = oldest[cut:]
                self.total_bytes -= min(cut, len(oldest))
                if not self.buffer[0]:
                    self.buffer.popleft()

    def drain(self) -> bytes:
        """Return the buffered audio, oldest first, and empty the buffer."""
        audio = b''.join(self.buffer)
        self.clear()
        return audio

    def clear(self) -> None:
        """Clear the buffer."""
        self.buffer.clear()
        self.total_bytes = 0


class RecordingBuffer:
    """Ordered audio chunks of a single utterance."""

    def __init__(self):
        self.frames: List[AudioFrame] = []
        self.total_bytes = 0
        self.frame_counter = 0

    def __len__(self) -> int:
        return len(self.frames)

    @property
    def is_empty(self) -> bool:
        return not self.frames

    @property
    def first_timestamp(self) -> Optional[float]:
        return self.frames[0].timestamp if self.frames else None

    def append(self, audio_data: bytes, timestamp: float) -> None:
        """Append a chunk captured at ``timestamp`` (controller milliseconds)."""
        if not audio_data:
            return
        self.frames.append(AudioFrame(
            data=audio_data,
            timestamp=timestamp,
            frame_number=self.frame_counter
        ))
        self.frame_counter += 1
        self.total_bytes += len(audio_data)

    def drain(self) -> bytes:
        """Join all chunks in order and clear the buffer."""
        audio = b''.join(frame.data for frame in self.frames)
        logger.debug(f"Drained recording buffer: {len(self.frames)} chunks, {len(audio)} bytes")
        self.clear()
        return audio

    def clear(self) -> None:
        """Clear the buffer."""
        self.frames.clear()
        self.total_bytes = 0
        self.frame_counter = 0
