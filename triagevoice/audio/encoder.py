"""Utterance encoder that turns captured PCM into an audio blob."""

import io
import logging
import wave
from typing import Callable, Dict, Iterable, Optional

from ..models.audio import AudioBlob

logger = logging.getLogger(__name__)


# Most broadly accepted by speech-to-text services
FALLBACK_MIME_TYPE = "audio/wav"


def _encode_wav(pcm: bytes, sample_rate: int, channels: int, sample_width: int) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buffer.getvalue()


def _encode_l16(pcm: bytes, sample_rate: int, channels: int, sample_width: int) -> bytes:
    # audio/L16 is big-endian 16-bit PCM
    if sample_width != 2:
        raise ValueError("audio/L16 requires 16-bit samples")
    swapped = bytearray(pcm[:len(pcm) - len(pcm) % 2])
    swapped[0::2], swapped[1::2] = swapped[1::2], swapped[0::2]
    return bytes(swapped)


SUPPORTED_ENCODINGS: Dict[str, Callable[[bytes, int, int, int], bytes]] = {
    "audio/wav": _encode_wav,
    "audio/l16": _encode_l16,
}


def is_type_supported(mime_type: str) -> bool:
    """Whether ``mime_type`` (parameters ignored) can be produced."""
    return mime_type.split(';')[0].strip().lower() in SUPPORTED_ENCODINGS


def choose_mime_type(preferred: Optional[Iterable[str]] = None) -> str:
    """Pick the first supported mime type, falling back to WAV."""
    for mime_type in preferred or ():
        if is_type_supported(mime_type):
            return mime_type.split(';')[0].strip().lower()
        logger.warning(f"Audio encoding {mime_type!r} not supported, trying next")
    return FALLBACK_MIME_TYPE


class UtteranceEncoder:
    """Encodes PCM of one utterance into the chosen container."""

    def __init__(self, sample_rate: int = 16000, channels: int = 1, sample_width: int = 2,
                 preferred_mime_types: Optional[Iterable[str]] = None):
        """Initialize encoder.

        Args:
            sample_rate: Sample rate of the captured PCM
            channels: Number of channels of the captured PCM
            sample_width: Bytes per sample of the captured PCM
            preferred_mime_types: Encodings to try, in order of preference

        Raises:
            ValueError: If the PCM format cannot be encoded at all
        """
        if sample_width not in (1, 2, 3, 4):
            raise ValueError(f"Unsupported sample width: {sample_width}")
        if channels < 1 or sample_rate <= 0:
            raise ValueError(f"Invalid audio format: {sample_rate}Hz, {channels} channels")

        self.sample_rate = sample_rate
        self.channels = channels
        self.sample_width = sample_width
        self.mime_type = choose_mime_type(preferred_mime_types)
        if self.mime_type == "audio/l16" and sample_width != 2:
            logger.warning("audio/L16 needs 16-bit samples, using WAV instead")
            self.mime_type = FALLBACK_MIME_TYPE

        logger.info(f"UtteranceEncoder initialized: {self.mime_type}, {sample_rate}Hz")

    def duration_ms(self, pcm: bytes) -> float:
        bytes_per_second = self.sample_rate * self.channels * self.sample_width
        return len(pcm) * 1000.0 / bytes_per_second

    def encode(self, pcm: bytes) -> AudioBlob:
        """Encode raw PCM into an ``AudioBlob``."""
        encode = SUPPORTED_ENCODINGS[self.mime_type]
        data = encode(pcm, self.sample_rate, self.channels, self.sample_width)
        mime_type = self.mime_type
        if mime_type == "audio/l16":
            mime_type = f"audio/L16;rate={self.sample_rate};channels={self.channels}"
        return AudioBlob(
            data=data,
            mime_type=mime_type,
            sample_rate=self.sample_rate,
            channels=self.channels,
            duration_ms=self.duration_ms(pcm),
        )
