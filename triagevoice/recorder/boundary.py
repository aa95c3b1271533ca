"""Speech boundary detection over per-frame energy samples."""

import logging
from enum import Enum
from typing import Optional

from ..models.recorder import FinalizeReason, UtteranceSummary, UtteranceTiming
from .settings import RecorderSettings

logger = logging.getLogger(__name__)


class BoundaryState(Enum):
    QUIET = "quiet"
    SPEAKING = "speaking"


class BoundaryEvent(Enum):
    """What a single sample changed."""
    NONE = "none"
    SPEECH_STARTED = "speech_started"
    SILENCE_ARMED = "silence_armed"
    SILENCE_CANCELLED = "silence_cancelled"
    TIMEOUT = "timeout"


class SpeechBoundaryDetector:
    """Two-state machine (quiet/speaking) driven by energy samples.

    The detector only classifies; the caller owns the silence countdown. It
    arms its timer on ``SILENCE_ARMED``, cancels it on
    ``SILENCE_CANCELLED`` and calls ``finalize`` when the timer elapses or
    on ``TIMEOUT``.
    """

    def __init__(self, settings: RecorderSettings):
        self.settings = settings
        self.state = BoundaryState.QUIET
        self.timing = UtteranceTiming()

    @property
    def is_speaking(self) -> bool:
        return self.state is BoundaryState.SPEAKING

    @property
    def silence_pending(self) -> bool:
        return self.timing.silence_started_at is not None

    def reset(self) -> None:
        """Return to QUIET and forget the utterance in progress."""
        self.state = BoundaryState.QUIET
        self.timing.clear()

    def process_level(self, level: float, now: float) -> BoundaryEvent:
        """Classify one energy sample taken at ``now`` (milliseconds)."""
        above = level > self.settings.silence_threshold

        if self.state is BoundaryState.QUIET:
            if not above:
                return BoundaryEvent.NONE
            self.state = BoundaryState.SPEAKING
            self.timing.speech_started_at = now
            self.timing.silence_started_at = None
            logger.info(f"Speech started, level: {level:.1f}")
            return BoundaryEvent.SPEECH_STARTED

        if self._timed_out(now):
            logger.info(f"Max recording time reached ({self.settings.max_recording_ms:.0f}ms)")
            return BoundaryEvent.TIMEOUT

        if above:
            if self.timing.silence_started_at is not None:
                self.timing.silence_started_at = None
                return BoundaryEvent.SILENCE_CANCELLED
            return BoundaryEvent.NONE

        if self.timing.silence_started_at is None:
            self.timing.silence_started_at = now
            return BoundaryEvent.SILENCE_ARMED
        return BoundaryEvent.NONE

    def _timed_out(self, now: float) -> bool:
        started = self.timing.speech_started_at
        return started is not None and now - started >= self.settings.max_recording_ms

    def speaking_duration(self, now: float) -> float:
        """Speech span so far: up to the pending silence, or up to ``now``."""
        started = self.timing.speech_started_at
        if started is None:
            return 0.0
        end = self.timing.silence_started_at
        if end is None:
            end = now
        return max(0.0, end - started)

    def finalize(self, now: float, reason: FinalizeReason) -> Optional[UtteranceSummary]:
        """Close the current utterance and go back to QUIET.

        Returns:
            The utterance summary, or None when no speech was in progress
        """
        if self.state is not BoundaryState.SPEAKING:
            self.reset()
            return None

        summary = UtteranceSummary(
            reason=reason,
            speech_started_at=self.timing.speech_started_at,
            finalized_at=now,
            speaking_duration_ms=self.speaking_duration(now),
        )
        self.reset()
        return summary

    def accepts(self, summary: UtteranceSummary, blob_size: int) -> bool:
        """Acceptance floor: big enough and spoken for long enough."""
        return (blob_size > self.settings.min_blob_bytes
                and summary.speaking_duration_ms >= self.settings.min_speaking_duration_ms)
