"""Audio capture and processing module."""

from .capture import AudioCaptureSession
from .analyzer import LevelAnalyzer
from .buffer import RollingAudioBuffer, RecordingBuffer
from .encoder import UtteranceEncoder, choose_mime_type
from .scheduler import FrameScheduler, DelayedAction
from .playback import AudioPlayer

__all__ = [
    'AudioCaptureSession',
    'LevelAnalyzer',
    'RollingAudioBuffer',
    'RecordingBuffer',
    'UtteranceEncoder',
    'choose_mime_type',
    'FrameScheduler',
    'DelayedAction',
    'AudioPlayer',
]
