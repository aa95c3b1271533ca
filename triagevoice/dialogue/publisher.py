"""Conversation message publisher for pub/sub event publishing."""

import logging
from typing import Callable
from pubsub import pub
from ..models.conversation import Message

logger = logging.getLogger(__name__)


class MessagePublisher:
    """Publishes conversation messages using pubsub.pub."""

    def __init__(self, topic: str = "conversation.message"):
        """Initialize message publisher.

        Args:
            topic: Pub/sub topic name for conversation messages
        """
        self.topic = topic
        logger.info(f"MessagePublisher initialized with topic: {topic}")

    def publish_message(self, message: Message) -> None:
        """Publish a conversation message to the pub/sub topic.

        Args:
            message: Message to publish
        """
        pub.sendMessage(self.topic, message=message)
        logger.debug(f"Published {message.role} message: {message.id}")

    def get_callback(self) -> Callable[[Message], None]:
        """Get callback function for TurnArbiter to use.

        Returns:
            Callback function that publishes conversation messages
        """
        return self.publish_message
