"""Recording controller state models."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class ListeningState(Enum):
    """Composite state of the recording controller."""
    IDLE = "idle"
    LISTENING_QUIET = "listening_quiet"
    LISTENING_SPEAKING = "listening_speaking"
    PAUSED = "paused"


class RecorderPhase(Enum):
    """What the UI should show for the recorder."""
    IDLE = "idle"
    LISTENING_QUIET = "listening_quiet"
    LISTENING_SPEAKING = "listening_speaking"
    PROCESSING = "processing"
    PLAYING = "playing"
    NO_PERMISSION = "no_permission"


class FinalizeReason(Enum):
    """Why an utterance was closed."""
    SILENCE = "silence"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class GatingSignals:
    """Externally supplied signals that decide whether listening is allowed."""
    disabled: bool = False
    is_processing: bool = False
    is_playing_audio: bool = False

    def with_changes(self, **changes) -> "GatingSignals":
        return replace(self, **changes)

    @property
    def blocks_listening(self) -> bool:
        return self.disabled or self.is_processing or self.is_playing_audio


@dataclass
class UtteranceTiming:
    """Timing of the utterance in progress, in controller milliseconds."""
    speech_started_at: Optional[float] = None
    silence_started_at: Optional[float] = None

    def clear(self) -> None:
        self.speech_started_at = None
        self.silence_started_at = None


@dataclass(frozen=True)
class UtteranceSummary:
    """Outcome of closing an utterance, before the acceptance check."""
    reason: FinalizeReason
    speech_started_at: float
    finalized_at: float
    speaking_duration_ms: float


@dataclass(frozen=True)
class RecorderStatus:
    """Snapshot of the recorder published to display components."""
    phase: RecorderPhase
    listening_state: ListeningState
    audio_level: float = 0.0  # 0-100, for a level meter
    has_permission: Optional[bool] = None

    @property
    def is_speaking(self) -> bool:
        return self.listening_state is ListeningState.LISTENING_SPEAKING
