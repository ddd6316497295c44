"""Session notification publisher for pub/sub event publishing."""

import logging
from typing import Any

from pubsub import pub

from ..models.events import (
    ErrorNotification,
    GenerationNotification,
    SegmentationNotification,
    StatusNotification,
    TimerNotification,
)

logger = logging.getLogger(__name__)

STATUS_TOPIC = "session.status"
SEGMENTATION_TOPIC = "session.segmentation"
TIMER_TOPIC = "session.timer"
GENERATION_TOPIC = "session.generation"
ERROR_TOPIC = "session.error"

ALL_TOPICS = (STATUS_TOPIC, SEGMENTATION_TOPIC, TIMER_TOPIC, GENERATION_TOPIC, ERROR_TOPIC)


def _topic_prototype(event):
    """Message signature shared by every session topic."""


class SessionPublisher:
    """Publishes session notifications using pubsub.pub.

    Every topic carries a single `event` argument holding the notification
    dataclass, so subscribers are written as `def listener(event): ...`.
    """

    def __init__(self, prefix: str = ""):
        """Initialize session publisher.

        Args:
            prefix: Optional topic prefix (e.g. a room id) so several
                controllers can share one process without crosstalk.
        """
        self.prefix = f"{prefix}." if prefix else ""
        topic_mgr = pub.getDefaultTopicMgr()
        for topic in ALL_TOPICS:
            topic_mgr.getOrCreateTopic(self.topic(topic), _topic_prototype)
        logger.info(f"SessionPublisher initialized with prefix: '{prefix}'")

    def topic(self, name: str) -> str:
        return f"{self.prefix}{name}"

    def _send(self, name: str, event: Any) -> None:
        pub.sendMessage(self.topic(name), event=event)
        logger.debug(f"Published {type(event).__name__} on {self.topic(name)}")

    def publish_status(self, event: StatusNotification) -> None:
        self._send(STATUS_TOPIC, event)

    def publish_segmentation(self, event: SegmentationNotification) -> None:
        self._send(SEGMENTATION_TOPIC, event)

    def publish_timer(self, event: TimerNotification) -> None:
        self._send(TIMER_TOPIC, event)

    def publish_generation(self, event: GenerationNotification) -> None:
        self._send(GENERATION_TOPIC, event)

    def publish_error(self, event: ErrorNotification) -> None:
        self._send(ERROR_TOPIC, event)

    def subscribe(self, listener, name: str) -> None:
        pub.subscribe(listener, self.topic(name))

    def unsubscribe(self, listener, name: str) -> None:
        pub.unsubscribe(listener, self.topic(name))
