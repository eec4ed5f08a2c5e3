"""
SubscriptionRegistry - Explicit observable topics

Bounded Context: Change notification towards the UI layer
Responsibilities:
  - Declare the topics the engine publishes
  - Attach / detach subscribers
  - Deliver immutable snapshots to every subscriber of a topic

Design Motivation:
  Problem: Implicit observable properties make it unclear what can be watched
  Solution: Explicit topic registration, fail-fast on unknown topics

Threading: Thread-safe (lock for writes, snapshot of handlers for delivery)
Pattern: Registry with explicit registration
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Set

logger = logging.getLogger(__name__)


class TopicNotAvailableError(Exception):
    """Raised when subscribing to or publishing on an unregistered topic"""
    pass


class SubscriptionRegistry:
    """
    Registry of observable topics and their subscribers.

    Key Features:
      - Fail-fast: Unknown topics rejected immediately
      - Introspection: available_topics / get_help
      - Isolation: A failing subscriber is logged and skipped, the
        remaining subscribers still receive the snapshot

    Example:
        registry = SubscriptionRegistry()
        registry.register('statistics', "Visit counters changed")

        unsubscribe = registry.subscribe('statistics', print)
        registry.publish('statistics', stats)
        unsubscribe()
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Callable[[Any], None]]] = {}
        self._descriptions: Dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, topic: str, description: str) -> None:
        """
        Declare a topic.

        Raises:
            ValueError: If topic already registered
        """
        with self._lock:
            if topic in self._subscribers:
                raise ValueError(f"Topic '{topic}' already registered")
            self._subscribers[topic] = []
            self._descriptions[topic] = description

    def subscribe(self, topic: str, handler: Callable[[Any], None]) -> Callable[[], None]:
        """
        Attach a handler to a topic.

        Returns:
            Callable that detaches the handler (safe to call twice)

        Raises:
            TopicNotAvailableError: If topic not registered
        """
        with self._lock:
            self._require(topic)
            self._subscribers[topic].append(handler)

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._subscribers.get(topic, [])
                if handler in handlers:
                    handlers.remove(handler)

        return unsubscribe

    def publish(self, topic: str, payload: Any) -> int:
        """
        Deliver a payload to every subscriber of a topic.

        Returns:
            Number of handlers that received it without raising

        Raises:
            TopicNotAvailableError: If topic not registered
        """
        with self._lock:
            self._require(topic)
            handlers = list(self._subscribers[topic])

        delivered = 0
        for handler in handlers:
            try:
                handler(payload)
                delivered += 1
            except Exception as e:
                logger.error(f"Subscriber for '{topic}' failed: {e}", exc_info=True)
        return delivered

    def is_available(self, topic: str) -> bool:
        return topic in self._subscribers

    @property
    def available_topics(self) -> Set[str]:
        """Snapshot of registered topics."""
        return set(self._subscribers.keys())

    def get_help(self) -> Dict[str, str]:
        return dict(self._descriptions)

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, []))

    def _require(self, topic: str) -> None:
        if topic not in self._subscribers:
            raise TopicNotAvailableError(
                f"Topic '{topic}' not available. "
                f"Available topics: {', '.join(sorted(self._subscribers))}"
            )
