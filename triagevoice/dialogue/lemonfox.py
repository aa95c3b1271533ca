"""Client for the LemonFox speech-to-text, chat and text-to-speech APIs."""

import asyncio
import logging
from typing import Dict, List, Optional

import aiohttp

from ..models.audio import AudioBlob

logger = logging.getLogger(__name__)


FALLBACK_REPLY = "Lo siento, no pude procesar tu consulta."


class LemonfoxAPIError(Exception):
    """Raised when a LemonFox endpoint answers with a non-200 status."""

    def __init__(self, endpoint: str, status: int, body: str):
        super().__init__(f"LemonFox {endpoint} error: {status} - {body}")
        self.endpoint = endpoint
        self.status = status
        self.body = body


def filename_for_mime(mime_type: str) -> str:
    """Upload filename whose extension matches the audio mime type."""
    mime_type = (mime_type or "audio/webm").lower()
    if "mp4" in mime_type or "m4a" in mime_type:
        return "audio.m4a"
    if "ogg" in mime_type:
        return "audio.ogg"
    if "wav" in mime_type:
        return "audio.wav"
    if "mp3" in mime_type or "mpeg" in mime_type:
        return "audio.mp3"
    if "l16" in mime_type:
        return "audio.pcm"
    return "audio.webm"


class LemonfoxClient:
    """Thin async client for the OpenAI-compatible LemonFox API."""

    def __init__(self, api_key: str, base_url: str = "https://api.lemonfox.ai/v1",
                 chat_model: str = "llama-4-maverick", stt_model: str = "whisper-1",
                 tts_model: str = "tts-1", max_tokens: int = 200, temperature: float = 0.9,
                 tts_speed: float = 1.1, timeout_seconds: float = 60):
        """Initialize LemonFox client.

        Args:
            api_key: LemonFox API key
            base_url: API root, without trailing slash
            chat_model: Model used for the patient replies
            stt_model: Model used for transcription
            tts_model: Model used for speech synthesis
            max_tokens: Maximum tokens in a patient reply
            temperature: Sampling temperature for patient replies
            tts_speed: Playback speed of synthesized speech
            timeout_seconds: Total timeout of each request
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.chat_model = chat_model
        self.stt_model = stt_model
        self.tts_model = tts_model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.tts_speed = tts_speed
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

        logger.info(f"LemonfoxClient initialized: {self.base_url}, chat model {chat_model}")

    @classmethod
    def from_config(cls, config) -> "LemonfoxClient":
        return cls(
            api_key=config.get_api_key(),
            base_url=config.get('lemonfox.base_url', "https://api.lemonfox.ai/v1"),
            chat_model=config.get('lemonfox.chat_model', "llama-4-maverick"),
            stt_model=config.get('lemonfox.stt_model', "whisper-1"),
            tts_model=config.get('lemonfox.tts_model', "tts-1"),
            max_tokens=config.get('lemonfox.max_tokens', 200),
            temperature=config.get('lemonfox.temperature', 0.9),
            tts_speed=config.get('lemonfox.tts_speed', 1.1),
            timeout_seconds=config.get('lemonfox.timeout_seconds', 60),
        )

    def _headers(self, json_body: bool = False) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def _read_json(self, response: aiohttp.ClientResponse, endpoint: str) -> Dict:
        """Decode a JSON object body, reporting anything else as an API error."""
        try:
            result = await response.json(content_type=None)
        except ValueError as e:
            raise LemonfoxAPIError(endpoint, response.status, f"invalid JSON body: {e}")
        if not isinstance(result, dict):
            raise LemonfoxAPIError(endpoint, response.status, f"unexpected JSON body: {result!r}")
        return result

    async def transcribe(self, blob: AudioBlob, language: str = "es") -> str:
        """Transcribe an utterance.

        Args:
            blob: Encoded utterance
            language: Spoken language code

        Returns:
            Transcribed text, possibly empty

        Raises:
            LemonfoxAPIError: If the API call fails
        """
        form = aiohttp.FormData()
        form.add_field("file", blob.data, filename=filename_for_mime(blob.mime_type),
                       content_type=blob.mime_type.split(';')[0])
        form.add_field("model", self.stt_model)
        form.add_field("language", language)
        form.add_field("response_format", "json")

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.post(f"{self.base_url}/audio/transcriptions",
                                    headers=self._headers(), data=form) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise LemonfoxAPIError("transcription", response.status, error_text)

                result = await self._read_json(response, "transcription")

        text = (result.get("text") or "").strip()
        logger.info(f"Transcribed {blob.size} bytes: '{text}'")
        return text

    async def chat(self, messages: List[Dict[str, str]]) -> str:
        """Generate the patient's next reply.

        Args:
            messages: Chat messages, system prompt first

        Returns:
            Reply text

        Raises:
            LemonfoxAPIError: If the API call fails
        """
        data = {
            "model": self.chat_model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.post(f"{self.base_url}/chat/completions",
                                    headers=self._headers(json_body=True), json=data) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise LemonfoxAPIError("chat", response.status, error_text)

                result = await self._read_json(response, "chat")

        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content:
            logger.warning("Chat response carried no content, using fallback reply")
            return FALLBACK_REPLY
        return content.strip()

    async def synthesize(self, text: str, voice: str = "dora",
                         response_format: str = "wav") -> bytes:
        """Synthesize the patient's reply as speech.

        Args:
            text: Text to speak
            voice: Voice name
            response_format: Audio container of the response

        Returns:
            Audio bytes

        Raises:
            LemonfoxAPIError: If the API call fails
        """
        data = {
            "model": self.tts_model,
            "input": text,
            "voice": voice,
            "response_format": response_format,
            "speed": self.tts_speed,
        }

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.post(f"{self.base_url}/audio/speech",
                                    headers=self._headers(json_body=True), json=data) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise LemonfoxAPIError("speech", response.status, error_text)

                audio = await response.read()

        logger.debug(f"Synthesized {len(text)} chars into {len(audio)} bytes ({voice})")
        return audio

    async def check_health(self) -> Optional[str]:
        """Cheap connectivity probe.

        Returns:
            None when the API answers, otherwise a description of the problem
        """
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(f"{self.base_url}/models", headers=self._headers()) as response:
                    if response.status != 200:
                        return f"HTTP {response.status}"
            return None
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return str(e) or "timeout"
