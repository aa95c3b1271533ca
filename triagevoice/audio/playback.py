"""Speaker playback of synthesized patient replies."""

import io
import logging
import wave
from threading import Event, Lock
from typing import Optional

import pyaudio

logger = logging.getLogger(__name__)


class AudioPlayer:
    """Plays WAV audio through PyAudio.

    ``play`` blocks until the audio ends or ``stop`` is called, so callers on
    an event loop run it in an executor.
    """

    def __init__(self, output_device_index: Optional[int] = None, chunk_size: int = 1024):
        self.output_device_index = output_device_index
        self.chunk_size = chunk_size
        self.stop_event = Event()
        self._lock = Lock()
        self.is_playing = False

    def play(self, wav_bytes: bytes) -> bool:
        """Play a WAV file held in memory.

        Args:
            wav_bytes: Complete WAV file contents

        Returns:
            True if playback ran to the end, False if it was stopped early
        """
        with self._lock:
            self.stop_event.clear()
            self.is_playing = True
            pyaudio_instance = pyaudio.PyAudio()
            stream = None
            try:
                with wave.open(io.BytesIO(wav_bytes), 'rb') as wf:
                    stream = pyaudio_instance.open(
                        format=pyaudio_instance.get_format_from_width(wf.getsampwidth()),
                        channels=wf.getnchannels(),
                        rate=wf.getframerate(),
                        output=True,
                        output_device_index=self.output_device_index,
                    )
                    logger.debug(f"Playing {wf.getnframes()} frames at {wf.getframerate()}Hz")

                    data = wf.readframes(self.chunk_size)
                    while data:
                        if self.stop_event.is_set():
                            logger.info("Playback stopped early")
                            return False
                        stream.write(data)
                        data = wf.readframes(self.chunk_size)
                return True
            finally:
                if stream is not None:
                    stream.stop_stream()
                    stream.close()
                pyaudio_instance.terminate()
                self.is_playing = False

    def stop(self) -> None:
        """Interrupt the current playback, if any."""
        self.stop_event.set()
