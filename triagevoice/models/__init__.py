"""Data models for the triagevoice application."""

from .audio import AudioFrame, AudioBlob
from .recorder import (
    ListeningState,
    RecorderPhase,
    FinalizeReason,
    GatingSignals,
    UtteranceTiming,
    UtteranceSummary,
    RecorderStatus,
)
from .conversation import Message, ChatSession, SavedConversation

__all__ = [
    "AudioFrame",
    "AudioBlob",
    # Recorder models
    "ListeningState",
    "RecorderPhase",
    "FinalizeReason",
    "GatingSignals",
    "UtteranceTiming",
    "UtteranceSummary",
    "RecorderStatus",
    # Conversation models
    "Message",
    "ChatSession",
    "SavedConversation",
]
