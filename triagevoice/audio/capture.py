"""Microphone capture session that owns the input stream and permission state."""

import logging
from typing import Optional

import pyaudio


logger = logging.getLogger(__name__)


class AudioCaptureSession:
    """Holds one live microphone stream, reused across utterances.

    The stream is opened lazily by ``request_access`` and kept open until
    ``release``. A stream that died (device unplugged, PortAudio error) is
    detected by ``is_live`` and re-opened on the next ``request_access``.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        format: int = pyaudio.paInt16,
        input_device_index: Optional[int] = None,
    ):
        """Initialize capture session with specified parameters.

        Args:
            sample_rate: Audio sample rate (16kHz for Whisper compatibility)
            chunk_size: PortAudio buffer size in frames
            channels: Number of audio channels (1 for mono)
            format: Audio format (16-bit signed int)
            input_device_index: PortAudio input device, None for the default
        """
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.format = format
        self.input_device_index = input_device_index

        # None until the first request, then True/False
        self.has_permission: Optional[bool] = None

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream: Optional[pyaudio.Stream] = None

        # Changes every time a new stream is opened
        self.stream_id = 0

    @property
    def sample_width(self) -> int:
        return pyaudio.get_sample_size(self.format)

    def request_access(self) -> bool:
        """Open the microphone, or reuse the stream that is already open.

        Returns:
            True if a live stream is available, False if access was refused
        """
        if self.is_live():
            return True

        # Drop whatever is left of a dead stream before re-opening
        self.release()

        try:
            self.pyaudio_instance = pyaudio.PyAudio()
            self.stream = self.pyaudio_instance.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.input_device_index,
                frames_per_buffer=self.chunk_size,
                stream_callback=None
            )
        except (OSError, ValueError) as e:
            logger.error(f"Microphone access denied: {e}")
            self.stream = None
            self._terminate()
            self.has_permission = False
            return False

        self.stream_id += 1
        self.has_permission = True
        logger.info(f"Microphone stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} frames/buffer (stream {self.stream_id})")
        return True

    def is_live(self) -> bool:
        """Whether the held stream can still deliver audio."""
        if self.stream is None:
            return False
        try:
            return bool(self.stream.is_active())
        except OSError:
            return False

    def read_available(self) -> bytes:
        """Read every frame the device has buffered, without blocking.

        Returns:
            Raw PCM bytes, empty when nothing is buffered or the stream died
        """
        if self.stream is None:
            return b""

        try:
            frames = self.stream.get_read_available()
            if frames <= 0:
                return b""
            return self.stream.read(frames, exception_on_overflow=False)
        except OSError as e:
            logger.warning(f"Microphone stream failed, releasing it: {e}")
            self.release()
            return b""

    def discard_pending(self) -> int:
        """Drop audio buffered while nobody was listening.

        Returns:
            Number of bytes discarded
        """
        discarded = len(self.read_available())
        if discarded:
            logger.debug(f"Discarded {discarded} bytes of stale microphone audio")
        return discarded

    def release(self) -> None:
        """Stop and close the held stream. Safe to call when none is held."""
        stream, self.stream = self.stream, None
        if stream is not None:
            try:
                stream.stop_stream()
                stream.close()
            except OSError as e:
                logger.warning(f"Error closing microphone stream: {e}")
            logger.info(f"Microphone stream {self.stream_id} released")
        self._terminate()

    def _terminate(self) -> None:
        if self.pyaudio_instance:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None

    def __del__(self):
        """Ensure resources are cleaned up on deletion."""
        if self.stream is not None:
            self.release()
