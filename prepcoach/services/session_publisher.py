"""Session publisher module for pub/sub status events."""

import uuid
import logging
from typing import Any
from pubsub import pub

from ..models.events import SessionEvent

logger = logging.getLogger(__name__)


class SessionPublisher:
    """Publishes session events using pubsub.pub for status subscribers."""

    def __init__(self, topic: str = "live.session"):
        """Initialize session publisher.

        Args:
            topic: Pub/sub topic name for session events
        """
        self.topic = topic
        logger.info(f"SessionPublisher initialized with topic: {topic}")

    def publish_session_event(self, session_event: SessionEvent) -> None:
        """Publish a session event to the pub/sub topic.

        Args:
            session_event: SessionEvent to publish
        """
        pub.sendMessage(self.topic, event=session_event)
        logger.debug(f"Published session event: {session_event.event_type} ({session_event.state})")

    def publish(self, event_type: str, state: str, message: str = "", **metadata: Any) -> SessionEvent:
        session_event = SessionEvent(
            event_id=uuid.uuid4().hex,
            event_type=event_type,
            state=state,
            message=message,
            metadata=dict(metadata),
        )
        self.publish_session_event(session_event)
        return session_event
