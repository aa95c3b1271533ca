"""Voice-activity-driven recording and turn-taking."""

from .settings import RecorderSettings
from .boundary import SpeechBoundaryDetector, BoundaryEvent, BoundaryState
from .controller import RecordingController
from .publisher import RecorderStatePublisher

__all__ = [
    "RecorderSettings",
    "SpeechBoundaryDetector",
    "BoundaryEvent",
    "BoundaryState",
    "RecordingController",
    "RecorderStatePublisher",
]
