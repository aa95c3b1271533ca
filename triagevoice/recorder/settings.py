"""Tunable constants of the recorder."""

from dataclasses import dataclass, field
from typing import Tuple

from ..config import VoiceTriageConfig


@dataclass(frozen=True)
class RecorderSettings:
    """Voice activity and turn-taking parameters (energy is on a 0-255 scale)."""
    silence_threshold: float = 15.0
    silence_duration_ms: float = 600.0
    min_speaking_duration_ms: float = 300.0
    max_recording_ms: float = 15000.0
    settle_delay_ms: float = 300.0
    frame_interval_ms: float = 1000.0 / 60.0
    min_blob_bytes: int = 500
    pre_roll_ms: float = 200.0
    fft_size: int = 256
    smoothing_time_constant: float = 0.8
    sample_rate: int = 16000
    channels: int = 1
    preferred_mime_types: Tuple[str, ...] = field(default=("audio/wav",))

    def __post_init__(self):
        if self.silence_duration_ms <= 0 or self.max_recording_ms <= 0:
            raise ValueError("Silence and max recording durations must be positive")
        if self.min_speaking_duration_ms < 0 or self.settle_delay_ms < 0:
            raise ValueError("Durations must not be negative")
        if self.frame_interval_ms <= 0:
            raise ValueError("frame_interval_ms must be positive")

    @classmethod
    def from_config(cls, config: VoiceTriageConfig) -> "RecorderSettings":
        """Build settings from the ``audio``, ``vad`` and ``recorder`` sections."""
        defaults = cls()
        return cls(
            silence_threshold=float(config.get('vad.silence_threshold', defaults.silence_threshold)),
            silence_duration_ms=float(config.get('vad.silence_duration_ms', defaults.silence_duration_ms)),
            min_speaking_duration_ms=float(config.get('vad.min_speaking_duration_ms',
                                                      defaults.min_speaking_duration_ms)),
            max_recording_ms=float(config.get('vad.max_recording_ms', defaults.max_recording_ms)),
            fft_size=int(config.get('vad.fft_size', defaults.fft_size)),
            smoothing_time_constant=float(config.get('vad.smoothing_time_constant',
                                                     defaults.smoothing_time_constant)),
            settle_delay_ms=float(config.get('recorder.settle_delay_ms', defaults.settle_delay_ms)),
            frame_interval_ms=float(config.get('recorder.frame_interval_ms', defaults.frame_interval_ms)),
            min_blob_bytes=int(config.get('recorder.min_blob_bytes', defaults.min_blob_bytes)),
            pre_roll_ms=float(config.get('recorder.pre_roll_ms', defaults.pre_roll_ms)),
            preferred_mime_types=tuple(config.get('recorder.preferred_mime_types',
                                                  defaults.preferred_mime_types) or ()),
            sample_rate=int(config.get('audio.sample_rate', defaults.sample_rate)),
            channels=int(config.get('audio.channels', defaults.channels)),
        )
