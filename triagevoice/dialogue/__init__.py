"""Conversation with the simulated patient."""

from .lemonfox import LemonfoxClient, LemonfoxAPIError
from .persona import build_system_prompt, WELCOME_MESSAGE, VOICE_OPTIONS
from .storage import ConversationStore
from .publisher import MessagePublisher
from .arbiter import TurnArbiter

__all__ = [
    "LemonfoxClient",
    "LemonfoxAPIError",
    "build_system_prompt",
    "WELCOME_MESSAGE",
    "VOICE_OPTIONS",
    "ConversationStore",
    "MessagePublisher",
    "TurnArbiter",
]
