"""Turn-taking between the doctor's utterances and the patient's replies."""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Set

import aiohttp

from ..audio.playback import AudioPlayer
from ..models.audio import AudioBlob
from ..models.conversation import ChatSession, Message, SavedConversation
from .lemonfox import LemonfoxAPIError, LemonfoxClient
from .persona import build_system_prompt
from .storage import ConversationStore, new_id, now_ms

logger = logging.getLogger(__name__)

REMOTE_ERRORS = (LemonfoxAPIError, aiohttp.ClientError, asyncio.TimeoutError)

DEFAULT_CASE_NAME = "Caso libre"
DEFAULT_CASE_CATEGORY = "general"


class TurnArbiter:
    """Runs one doctor/patient exchange at a time and drives the recorder gating.

    While a turn is being processed ``is_processing`` is raised; while the
    patient reply plays ``is_playing_audio`` is raised. The playing flag
    goes up before the processing flag drops, so an attached recorder
    never sees a gap in which it could resume listening.
    """

    def __init__(
        self,
        client: LemonfoxClient,
        store: ConversationStore,
        player: Optional[AudioPlayer] = None,
        language: str = "es",
        voice: str = "dora",
        history_limit: int = 10,
        auto_play: bool = True,
        case_description: Optional[str] = None,
        case_category: Optional[str] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        on_message: Optional[Callable[[Message], None]] = None,
    ):
        """Initialize the arbiter.

        Args:
            client: Remote transcription, chat and speech client
            store: Conversation store holding the session history
            player: Speaker output for patient replies
            language: Language of the doctor's speech
            voice: Voice of the patient replies
            history_limit: Number of previous messages sent with each chat request
            auto_play: Whether patient replies are spoken aloud
            case_description: Clinical case the patient acts out
            case_category: Category of the clinical case
            loop: Event loop running the turns
            on_message: Receives every message added to the conversation
        """
        self.client = client
        self.store = store
        self.player = player
        self.language = language
        self.voice = voice
        self.history_limit = history_limit
        self.auto_play = auto_play
        self.case_description = case_description
        self.case_category = case_category
        self.system_prompt = build_system_prompt(case_description, case_category)
        self.loop = loop
        self._on_message = on_message

        self.is_processing = False
        self.is_playing_audio = False
        self._gating: Optional[Callable[..., None]] = None
        self._lock: Optional[asyncio.Lock] = None
        self._tasks: Set[asyncio.Task] = set()

        self.session_id = new_id("session")
        self.store.create_session(self.session_id)

        # Statistics
        self.turns_completed = 0
        self.turns_failed = 0

    @property
    def session(self) -> ChatSession:
        return self.store.get_session(self.session_id)

    def attach(self, controller) -> None:
        """Drive a RecordingController's gating from this arbiter."""
        self._gating = controller.update_gating
        self._gating(is_processing=self.is_processing, is_playing_audio=self.is_playing_audio)

    def _set_gating(self, **changes) -> None:
        for name, value in changes.items():
            setattr(self, name, value)
        if self._gating:
            self._gating(**changes)

    def _turn_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    # Entry points

    def on_utterance(self, blob: AudioBlob) -> None:
        """Recorder callback: take ownership of an utterance and process it."""
        self._set_gating(is_processing=True)
        self._schedule(self.handle_utterance(blob))

    def submit_text(self, text: str) -> None:
        """Schedule a typed doctor message from synchronous code."""
        self._schedule(self.send_text(text))

    def _schedule(self, coro) -> None:
        loop = self.loop or asyncio.get_event_loop()
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def handle_utterance(self, blob: AudioBlob) -> None:
        logger.info(f"Handling utterance: {blob.size} bytes, {blob.duration_ms:.0f}ms")
        await self._run_turn(blob=blob)

    async def send_text(self, text: str) -> None:
        """Send a typed doctor message, skipping transcription."""
        text = text.strip()
        if not text:
            return
        await self._run_turn(text=text)

    async def drain(self) -> None:
        """Wait for all scheduled turns to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def save_session(self) -> Optional[SavedConversation]:
        """Keep the current session for review once the doctor has said something.

        Returns:
            The saved conversation, or None when there was nothing to save
        """
        session = self.session
        if session is None or not any(m.role == "user" for m in session.messages):
            return None
        return self.store.save_conversation(
            case_id=session.id,
            case_name=self.case_description or DEFAULT_CASE_NAME,
            category=self.case_category or DEFAULT_CASE_CATEGORY,
            messages=session.messages,
        )

    def reset(self) -> str:
        """Stop playback and start a new case session.

        The finished session is saved first.

        Returns:
            The new session id
        """
        if self.player is not None:
            self.player.stop()
        self.save_session()
        self.session_id = new_id("session")
        session = self.store.create_session(self.session_id)
        for message in session.messages:
            self._publish(message)
        logger.info(f"Conversation reset, new session: {self.session_id}")
        return self.session_id

    # Turn processing

    async def _run_turn(self, blob: Optional[AudioBlob] = None, text: str = "") -> None:
        async with self._turn_lock():
            session_id = self.session_id
            self._set_gating(is_processing=True)
            reply_audio = None
            try:
                if blob is not None:
                    text = await self.client.transcribe(blob, self.language)
                    if not text:
                        logger.warning("No speech recognized in utterance")
                if text:
                    reply_audio = await self._exchange(session_id, text)
                    if session_id != self.session_id:
                        logger.info(f"Session {session_id} was reset, not playing its reply")
                        reply_audio = None
                    self.turns_completed += 1
            except REMOTE_ERRORS as e:
                self.turns_failed += 1
                logger.error(f"Turn failed: {e}")
            finally:
                if reply_audio:
                    self._set_gating(is_playing_audio=True)
                self._set_gating(is_processing=False)

            if reply_audio:
                await self._play(reply_audio)

    async def _exchange(self, session_id: str, doctor_text: str) -> Optional[bytes]:
        """Get the patient's reply to one doctor message.

        Returns:
            Reply audio to play, or None when nothing should be played
        """
        history = self.store.history(session_id, self.history_limit)
        messages: List[Dict[str, str]] = [{"role": "system", "content": self.system_prompt}]
        messages.extend({"role": m.role, "content": m.content} for m in history)
        messages.append({"role": "user", "content": doctor_text})

        self._record(session_id, "user", doctor_text)
        reply = await self.client.chat(messages)

        reply_audio = None
        if self.auto_play and self.player is not None:
            try:
                reply_audio = await self.client.synthesize(reply, self.voice)
            except REMOTE_ERRORS as e:
                logger.error(f"Speech synthesis failed, keeping text reply: {e}")

        self._record(session_id, "assistant", reply, reply_audio)
        return reply_audio

    async def _play(self, audio: bytes) -> None:
        loop = self.loop or asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, self.player.play, audio)
        except Exception as e:
            logger.error(f"Playback failed: {e}", exc_info=True)
        finally:
            self._set_gating(is_playing_audio=False)

    def _record(self, session_id: str, role: str, content: str, audio: Optional[bytes] = None) -> Message:
        message = Message(id=new_id("msg"), role=role, content=content,
                          timestamp=now_ms(), audio=audio)
        self.store.add_message(session_id, message)
        if session_id == self.session_id:
            self._publish(message)
        return message

    def _publish(self, message: Message) -> None:
        if self._on_message:
            self._on_message(message)
