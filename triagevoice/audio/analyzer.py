"""Frequency-domain level analyzer for the live microphone stream.

The energy metric mirrors a browser ``AnalyserNode``: the most recent
``fft_size`` samples are Blackman-windowed, transformed, smoothed over time
and mapped from decibels onto a 0-255 byte scale. The level is the plain
mean of those bytes; no perceptual weighting is applied.
"""

import logging
from typing import Optional

import numpy as np
from scipy.signal import windows

logger = logging.getLogger(__name__)


class LevelAnalyzer:
    """Running energy estimate over a fixed analysis window."""

    def __init__(
        self,
        fft_size: int = 256,
        smoothing_time_constant: float = 0.8,
        min_decibels: float = -100.0,
        max_decibels: float = -30.0,
        sample_width: int = 2,
        stream_id: Optional[int] = None,
    ):
        """Initialize the analysis window.

        Args:
            fft_size: Window length in samples, a power of two
            smoothing_time_constant: Weight of the previous spectrum (0-1)
            min_decibels: Magnitude mapped to byte value 0
            max_decibels: Magnitude mapped to byte value 255
            sample_width: Bytes per PCM sample (only 16-bit is supported)
            stream_id: Capture stream this analyzer was built for
        """
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {fft_size}")
        if sample_width != 2:
            raise ValueError(f"Only 16-bit PCM is supported, got sample width {sample_width}")
        if min_decibels >= max_decibels:
            raise ValueError("min_decibels must be lower than max_decibels")

        self.fft_size = fft_size
        self.frequency_bin_count = fft_size // 2
        self.smoothing_time_constant = smoothing_time_constant
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels
        self.stream_id = stream_id

        self._window = windows.blackman(fft_size, sym=False)
        self._samples = np.zeros(fft_size, dtype=np.float64)
        self._smoothed = np.zeros(self.frequency_bin_count, dtype=np.float64)
        self.frequency_data = np.zeros(self.frequency_bin_count, dtype=np.uint8)

    @classmethod
    def for_session(cls, session, fft_size: int = 256,
                    smoothing_time_constant: float = 0.8) -> "LevelAnalyzer":
        """Build an analyzer bound to the session's current stream."""
        analyzer = cls(
            fft_size=fft_size,
            smoothing_time_constant=smoothing_time_constant,
            sample_width=session.sample_width,
            stream_id=session.stream_id,
        )
        logger.debug(f"Level analyzer built for stream {session.stream_id} "
                     f"(fft_size={fft_size})")
        return analyzer

    def is_bound_to(self, session) -> bool:
        """Whether this analyzer was built for the session's live stream."""
        return session.is_live() and session.stream_id == self.stream_id

    def push_pcm(self, pcm: bytes, channels: int = 1) -> None:
        """Feed 16-bit PCM into the analysis window (keeps the newest samples)."""
        if not pcm:
            return

        samples = np.frombuffer(pcm[:len(pcm) - len(pcm) % 2], dtype=np.int16)
        if channels > 1:
            usable = len(samples) - len(samples) % channels
            samples = samples[:usable].reshape(-1, channels).mean(axis=1)
        samples = samples.astype(np.float64) / 32768.0

        if len(samples) >= self.fft_size:
            self._samples[:] = samples[-self.fft_size:]
        else:
            self._samples = np.roll(self._samples, -len(samples))
            self._samples[-len(samples):] = samples

    def sample_level(self) -> float:
        """Read the current byte spectrum and return the mean of all bins.

        Returns:
            Energy estimate in [0, 255]
        """
        spectrum = np.fft.rfft(self._samples * self._window)
        magnitude = np.abs(spectrum[:self.frequency_bin_count]) / self.fft_size

        tau = self.smoothing_time_constant
        self._smoothed = tau * self._smoothed + (1.0 - tau) * magnitude

        with np.errstate(divide='ignore'):
            decibels = 20.0 * np.log10(self._smoothed)

        scale = 255.0 / (self.max_decibels - self.min_decibels)
        scaled = np.clip((decibels - self.min_decibels) * scale, 0, 255)
        self.frequency_data = np.floor(scaled).astype(np.uint8)

        return float(self.frequency_data.mean())

    def reset(self) -> None:
        """Forget the audio seen so far."""
        self._samples.fill(0.0)
        self._smoothed.fill(0.0)
        self.frequency_data.fill(0)
