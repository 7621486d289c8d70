"""Session publisher module for pub/sub event publishing."""

import logging
from pubsub import pub

from ..models.events import SESSION_STATE_TOPIC, SESSION_DRAFT_TOPIC, SESSION_TICK_TOPIC
from ..models.session import SessionStatus

logger = logging.getLogger(__name__)


class SessionPublisher:
    """Publishes recording session updates using pubsub.pub."""

    def publish_state(self, status: SessionStatus) -> None:
        """Publish a state transition."""
        pub.sendMessage(SESSION_STATE_TOPIC, status=status)
        logger.debug(f"Published session state: {status.state.value}")

    def publish_draft(self, status: SessionStatus) -> None:
        """Publish an updated draft."""
        pub.sendMessage(SESSION_DRAFT_TOPIC, status=status)

    def publish_tick(self, status: SessionStatus) -> None:
        """Publish the once-a-second display tick."""
        pub.sendMessage(SESSION_TICK_TOPIC, status=status)
