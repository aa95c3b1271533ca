"""Continuous, voice-activity-driven recording controller.

The controller listens to the microphone, decides when the doctor started
and finished speaking, and hands every complete utterance to its caller.
It runs entirely on one asyncio event loop: the sampling loop and the
silence/settle countdowns are loop timers, so no locks are needed; plain
state checks guard against re-entrancy instead.
"""

import asyncio
import logging
from typing import Callable, Optional

from ..audio.analyzer import LevelAnalyzer
from ..audio.buffer import RecordingBuffer, RollingAudioBuffer
from ..audio.capture import AudioCaptureSession
from ..audio.encoder import UtteranceEncoder
from ..audio.scheduler import DelayedAction, FrameScheduler
from ..models.audio import AudioBlob
from ..models.recorder import (
    FinalizeReason,
    GatingSignals,
    ListeningState,
    RecorderPhase,
    RecorderStatus,
)
from .boundary import BoundaryEvent, SpeechBoundaryDetector
from .settings import RecorderSettings

logger = logging.getLogger(__name__)


class RecordingController:
    """Orchestrates capture, level analysis, boundary detection and encoding.

    Externally visible behavior is limited to two outcomes: ``on_utterance``
    is called with an accepted utterance, or nothing happens. Permission
    problems, false triggers and dead streams are handled here and only
    show up in the published ``RecorderStatus``.
    """

    def __init__(
        self,
        on_utterance: Callable[[AudioBlob], None],
        session: AudioCaptureSession,
        settings: Optional[RecorderSettings] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        clock: Optional[Callable[[], float]] = None,
        on_status: Optional[Callable[[RecorderStatus], None]] = None,
        analyzer_factory: Optional[Callable[[AudioCaptureSession], LevelAnalyzer]] = None,
    ):
        """Initialize the controller.

        Args:
            on_utterance: Receives each accepted utterance; takes ownership of the blob
            session: Microphone capture session, shared across utterances
            settings: Voice activity and turn-taking parameters
            loop: Event loop that runs frames and timers
            clock: Milliseconds clock, defaults to the loop clock
            on_status: Receives a status snapshot whenever it changes
            analyzer_factory: Builds a level analyzer for the session's stream
        """
        self.settings = settings or RecorderSettings()
        self.session = session
        self.loop = loop or asyncio.get_event_loop()
        self._clock = clock or (lambda: self.loop.time() * 1000.0)
        self._on_utterance = on_utterance
        self._on_status = on_status
        self._analyzer_factory = analyzer_factory or self._default_analyzer

        self.analyzer: Optional[LevelAnalyzer] = None
        self.encoder: Optional[UtteranceEncoder] = None
        self.detector = SpeechBoundaryDetector(self.settings)
        self.recording_buffer = RecordingBuffer()
        self.pre_roll = RollingAudioBuffer(
            self.settings.pre_roll_ms,
            sample_rate=self.settings.sample_rate,
            channels=self.settings.channels,
        )

        self.frames = FrameScheduler(self.loop, self.settings.frame_interval_ms)
        self.silence_timer = DelayedAction("silence timer", self.loop)
        self.settle_timer = DelayedAction("settle delay", self.loop)

        self.signals = GatingSignals()
        self.state = ListeningState.IDLE
        self.audio_level = 0.0
        self.encoder_unavailable = False

        # Statistics
        self.utterances_emitted = 0
        self.utterances_discarded = 0

    def _default_analyzer(self, session: AudioCaptureSession) -> LevelAnalyzer:
        return LevelAnalyzer.for_session(
            session,
            fft_size=self.settings.fft_size,
            smoothing_time_constant=self.settings.smoothing_time_constant,
        )

    @property
    def has_permission(self) -> Optional[bool]:
        return self.session.has_permission

    @property
    def is_listening(self) -> bool:
        return self.state in (ListeningState.LISTENING_QUIET, ListeningState.LISTENING_SPEAKING)

    @property
    def may_listen(self) -> bool:
        """Whether gating and permission currently allow listening."""
        return (not self.signals.blocks_listening
                and self.has_permission is True
                and not self.encoder_unavailable)

    @property
    def status(self) -> RecorderStatus:
        """Current status snapshot for display components."""
        if self.has_permission is False or self.encoder_unavailable:
            phase = RecorderPhase.NO_PERMISSION
        elif self.signals.is_processing:
            phase = RecorderPhase.PROCESSING
        elif self.signals.is_playing_audio:
            phase = RecorderPhase.PLAYING
        elif self.state is ListeningState.LISTENING_SPEAKING:
            phase = RecorderPhase.LISTENING_SPEAKING
        elif self.state is ListeningState.LISTENING_QUIET:
            phase = RecorderPhase.LISTENING_QUIET
        else:
            phase = RecorderPhase.IDLE

        level = min(self.audio_level * 2, 100.0) if self.is_listening else 0.0
        return RecorderStatus(
            phase=phase,
            listening_state=self.state,
            audio_level=level,
            has_permission=self.has_permission,
        )

    # Lifecycle

    def activate(self) -> None:
        """Ask for the microphone once, then follow the gating signals."""
        if self.has_permission is None:
            logger.info("Requesting microphone access")
            self.session.request_access()
        self._apply_gating()
        self._publish_status()

    def retry_permission(self) -> bool:
        """Manual retry after the microphone was refused.

        Returns:
            True if access is now granted
        """
        logger.info("Retrying microphone access")
        self.encoder_unavailable = False
        granted = self.session.request_access()
        self._apply_gating()
        self._publish_status()
        return granted

    def shutdown(self) -> None:
        """Stop everything and release the microphone."""
        self.settle_timer.cancel()
        self._discard_capture(ListeningState.IDLE)
        self.session.release()
        self.analyzer = None
        self._publish_status()
        logger.info(f"RecordingController shut down: {self.utterances_emitted} utterances emitted, "
                    f"{self.utterances_discarded} discarded")

    # Gating

    def update_gating(self, **changes) -> None:
        """Apply new gating signals (disabled, is_processing, is_playing_audio)."""
        signals = self.signals.with_changes(**changes)
        if signals == self.signals:
            return
        logger.debug(f"Gating signals changed: {signals}")
        self.signals = signals
        self._apply_gating()
        self._publish_status()

    def _apply_gating(self) -> None:
        if self.may_listen:
            if not self.is_listening:
                self.settle_timer.arm(self.settings.settle_delay_ms, self._on_settled)
            return

        self.settle_timer.cancel()
        if self.is_listening:
            logger.info("Stopping capture due to gating change")
            self.stop_listening()

    def _on_settled(self) -> None:
        if self.may_listen and not self.is_listening:
            logger.info("Auto-starting microphone")
            self.start_listening()

    # Listening

    def start_listening(self) -> bool:
        """Open the session if needed and start sampling for speech.

        Returns:
            True if listening started
        """
        if self.is_listening:
            logger.debug("Already listening, ignoring start request")
            return False

        self.settle_timer.cancel()

        if not self.session.request_access():
            logger.warning("Cannot listen without microphone access")
            self._publish_status()
            return False

        if self.analyzer is None or not self.analyzer.is_bound_to(self.session):
            self.analyzer = self._analyzer_factory(self.session)

        if self.encoder is None:
            try:
                self.encoder = UtteranceEncoder(
                    sample_rate=self.session.sample_rate,
                    channels=self.session.channels,
                    sample_width=self.session.sample_width,
                    preferred_mime_types=self.settings.preferred_mime_types,
                )
            except ValueError as e:
                logger.error(f"No usable audio encoding, cannot listen: {e}")
                self.encoder_unavailable = True
                self._publish_status()
                return False

        # Audio buffered while not listening may hold the tail of playback
        self.session.discard_pending()
        self.recording_buffer.clear()
        self.pre_roll.clear()
        self.detector.reset()
        self.audio_level = 0.0

        self.state = ListeningState.LISTENING_QUIET
        logger.info("Listening for speech")
        self.frames.start(self._on_frame)
        return True

    def stop_listening(self) -> bool:
        """Stop capture right away and discard any utterance in progress.

        Returns:
            True if capture was running
        """
        if not self.is_listening:
            return False
        self._discard_capture(ListeningState.PAUSED)
        self._publish_status()
        return True

    def _discard_capture(self, next_state: ListeningState) -> None:
        self.frames.cancel()
        self.silence_timer.cancel()
        if self.detector.is_speaking:
            logger.info("Discarding interrupted utterance")
            self.utterances_discarded += 1
        self.detector.reset()
        self.recording_buffer.clear()
        self.pre_roll.clear()
        self.audio_level = 0.0
        self.state = next_state

    def _on_frame(self) -> None:
        if not self.session.is_live():
            logger.warning("Microphone stream ended while listening")
            self._discard_capture(ListeningState.IDLE)
            self._apply_gating()
            self._publish_status()
            return

        now = self._clock()
        pcm = self.session.read_available()
        self.analyzer.push_pcm(pcm, self.session.channels)
        level = self.analyzer.sample_level()
        self.audio_level = level

        event = self.detector.process_level(level, now)
        if event is BoundaryEvent.SPEECH_STARTED:
            self.recording_buffer.append(self.pre_roll.drain(), now)
            self.state = ListeningState.LISTENING_SPEAKING
        elif event is BoundaryEvent.SILENCE_ARMED:
            self.silence_timer.arm(self.settings.silence_duration_ms, self._on_silence_elapsed,
                                   armed_at=now)
        elif event is BoundaryEvent.SILENCE_CANCELLED:
            self.silence_timer.cancel()

        if self.detector.is_speaking:
            self.recording_buffer.append(pcm, now)
        else:
            self.pre_roll.add_audio_chunk(pcm)

        if event is BoundaryEvent.TIMEOUT:
            self._finalize(FinalizeReason.TIMEOUT)
            return

        self._publish_status()

    def _on_silence_elapsed(self) -> None:
        if not self.is_listening or not self.detector.is_speaking:
            return
        logger.info("Silence confirmed, finishing recording")
        self._finalize(FinalizeReason.SILENCE)

    def _finalize(self, reason: FinalizeReason) -> None:
        """Stop capture, then emit or discard the utterance. Runs once per utterance."""
        if not self.is_listening:
            return

        now = self._clock()
        if self.detector.is_speaking:
            # Audio captured since the last frame still belongs to the utterance
            self.recording_buffer.append(self.session.read_available(), now)
        summary = self.detector.finalize(now, reason)

        self.frames.cancel()
        self.silence_timer.cancel()
        pcm = self.recording_buffer.drain()
        self.pre_roll.clear()
        self.audio_level = 0.0
        self.state = ListeningState.IDLE

        if summary is not None:
            blob = self.encoder.encode(pcm)
            if self.detector.accepts(summary, blob.size):
                self.utterances_emitted += 1
                logger.info(f"Utterance accepted ({reason.value}): "
                            f"{summary.speaking_duration_ms:.0f}ms speaking, {blob.size} bytes")
                self._emit(blob)
            else:
                self.utterances_discarded += 1
                logger.debug(f"False trigger discarded ({reason.value}): "
                             f"{summary.speaking_duration_ms:.0f}ms speaking, {blob.size} bytes")

        self._apply_gating()
        self._publish_status()

    def _emit(self, blob: AudioBlob) -> None:
        try:
            self._on_utterance(blob)
        except Exception as e:
            logger.error(f"Utterance callback failed: {e}", exc_info=True)

    def _publish_status(self) -> None:
        if self._on_status:
            self._on_status(self.status)
