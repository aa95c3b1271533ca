"""In-memory conversation store."""

import logging
import random
import string
import time
from typing import Dict, List, Optional

from ..models.conversation import ChatSession, Message, SavedConversation
from .persona import WELCOME_MESSAGE

logger = logging.getLogger(__name__)


def now_ms() -> float:
    return time.time() * 1000.0


def new_id(prefix: str) -> str:
    """Timestamp-based id with random suffix, e.g. ``session-1700000000000-k3j9x0a1b``."""
    random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{prefix}-{int(now_ms())}-{random_suffix}"


class ConversationStore:
    """Keeps chat sessions and saved conversations for the life of the process."""

    def __init__(self):
        self.sessions: Dict[str, ChatSession] = {}
        self.conversations: Dict[str, SavedConversation] = {}

    def get_session(self, session_id: str) -> Optional[ChatSession]:
        return self.sessions.get(session_id)

    def create_session(self, session_id: str) -> ChatSession:
        """Start a session whose first message is the patient greeting."""
        timestamp = now_ms()
        welcome = Message(id="welcome", role="assistant", content=WELCOME_MESSAGE,
                          timestamp=timestamp)
        session = ChatSession(id=session_id, messages=[welcome],
                              created_at=timestamp, updated_at=timestamp)
        self.sessions[session_id] = session
        logger.info(f"Created chat session: {session_id}")
        return session

    def add_message(self, session_id: str, message: Message) -> ChatSession:
        """Append a message, creating the session on first use."""
        session = self.get_session(session_id)
        if session is None:
            session = self.create_session(session_id)
        session.messages.append(message)
        session.updated_at = now_ms()
        return session

    def history(self, session_id: str, limit: int = 10) -> List[Message]:
        """Last ``limit`` user/assistant messages of a session, oldest first."""
        session = self.get_session(session_id)
        if session is None:
            return []
        messages = [m for m in session.messages if m.role in ("user", "assistant")]
        return messages[-limit:] if limit > 0 else []

    def save_conversation(self, case_id: str, case_name: str, category: str,
                          messages: List[Message],
                          final_triage: Optional[str] = None) -> SavedConversation:
        """Keep a finished conversation for review.

        Raises:
            ValueError: If a required field is missing
        """
        if not case_id or not case_name or not category or messages is None:
            raise ValueError("Missing required fields")

        timestamp = now_ms()
        conversation = SavedConversation(
            id=new_id("conv"),
            case_id=case_id,
            case_name=case_name,
            category=category,
            messages=list(messages),
            final_triage=final_triage,
            created_at=timestamp,
            updated_at=timestamp,
        )
        self.conversations[conversation.id] = conversation
        logger.info(f"Saved conversation {conversation.id} ({len(messages)} messages)")
        return conversation

    def list_conversations(self) -> List[SavedConversation]:
        """Saved conversations, newest first."""
        return sorted(self.conversations.values(), key=lambda c: c.created_at, reverse=True)
