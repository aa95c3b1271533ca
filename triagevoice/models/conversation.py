"""Conversation data models."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Message:
    """A single chat message between the doctor and the simulated patient."""
    id: str
    role: str  # "user" | "assistant" | "system"
    content: str
    timestamp: float  # Unix timestamp in milliseconds
    audio: Optional[bytes] = None


@dataclass
class ChatSession:
    """Ephemeral conversation state for one simulated case."""
    id: str
    messages: List[Message] = field(default_factory=list)
    created_at: float = 0.0
    updated_at: float = 0.0


@dataclass
class SavedConversation:
    """A finished conversation kept for later review."""
    id: str
    case_id: str
    case_name: str
    category: str
    messages: List[Message]
    final_triage: Optional[str] = None
    created_at: float = 0.0
    updated_at: float = 0.0
