"""Recorder status publisher for pub/sub event publishing."""

import logging
from pubsub import pub
from ..models.recorder import RecorderStatus

logger = logging.getLogger(__name__)


class RecorderStatePublisher:
    """Publishes recorder status snapshots using pubsub.pub."""

    def __init__(self, topic: str = "recorder.state"):
        """Initialize recorder state publisher.

        Args:
            topic: Pub/sub topic name for recorder status
        """
        self.topic = topic
        self.last_status = None
        logger.info(f"RecorderStatePublisher initialized with topic: {topic}")

    def publish_status(self, status: RecorderStatus) -> None:
        """Publish a status snapshot to the pub/sub topic.

        Args:
            status: RecorderStatus to publish
        """
        if status.phase != getattr(self.last_status, "phase", None):
            logger.debug(f"Recorder phase: {status.phase.value}")
        self.last_status = status
        pub.sendMessage(self.topic, status=status)
