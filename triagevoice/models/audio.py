"""Audio-related data models."""

from dataclasses import dataclass


@dataclass
class AudioFrame:
    """A single audio chunk with timestamp."""
    data: bytes
    timestamp: float  # Milliseconds on the controller clock
    frame_number: int


@dataclass
class AudioBlob:
    """An encoded utterance handed to the caller.

    The receiver owns the blob: nothing in the recorder keeps a reference
    to it after emission.
    """
    data: bytes
    mime_type: str
    sample_rate: int = 16000
    channels: int = 1
    duration_ms: float = 0.0

    @property
    def size(self) -> int:
        return len(self.data)
