"""
Visit Log Publisher
===================

Bounded Context: Remote location logging

Publishes VisitLogMessage instances to MQTT.

Design:
- Wraps a BrokerConnection (socket, counters)
- Formats VisitLogMessage to JSON
- QoS 0: a lost location log is acceptable

Message Flow:
    VisitTrackingEngine → publish queue → VisitPublisher → MQTT Broker

Example:
    >>> from canyon_mqtt import VisitPublisher, create_logger
    >>> publisher = VisitPublisher(
    ...     broker_host="localhost",
    ...     topic="canyon/user_locations",
    ...     logger=create_logger("visits"),
    ... )
    >>> publisher.connect()
    >>> publisher.publish_visit_log(message)
"""

from typing import Any, Dict, Optional

from .connection import BrokerConnection
from ..logging import LogEvent, StructuredLogger
from ..schemas import VisitLogMessage


class VisitPublisher:
    """Publisher for anonymous location logs."""

    def __init__(
        self,
        broker_host: str,
        topic: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "canyon_visit_publisher",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 0
    ):
        self.logger = logger
        self.connection = BrokerConnection(
            host=broker_host,
            port=broker_port,
            topic=topic,
            client_id=client_id,
            logger=logger,
            username=username,
            password=password,
            qos=qos,
        )

    @property
    def topic(self) -> str:
        return self.connection.topic

    def connect(self, timeout: float = 10.0) -> bool:
        return self.connection.open(timeout)

    def disconnect(self) -> None:
        self.connection.close()

    def is_connected(self) -> bool:
        return self.connection.online

    def format_message(self, visit_log: VisitLogMessage) -> Dict[str, Any]:
        """
        Wire form of one location log.

        Raises:
            ValueError: If the message cannot be serialized
        """
        try:
            formatted = visit_log.to_dict()
        except (AttributeError, TypeError) as e:
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Failed to serialize location log",
                exc_info=e,
                metadata={'point': getattr(visit_log, 'point', None)}
            )
            raise ValueError(f"Failed to format location log: {e}")

        self.logger.debug(
            event=LogEvent.VISIT_LOG_SERIALIZED,
            message="Serialized location log",
            metadata={'point': visit_log.point, 'structure': visit_log.structure}
        )
        return formatted

    def publish_visit_log(self, visit_log: VisitLogMessage) -> bool:
        """Send one location log. False if it was not handed to the broker."""
        try:
            payload = self.format_message(visit_log)
        except ValueError:
            return False
        return self.connection.send(payload)

    def get_stats(self) -> Dict[str, Any]:
        counters = self.connection.counters()
        return {
            'message_count': counters['sent'],
            'failed_count': counters['failed'],
            'connected': self.connection.online,
            'topic': self.connection.topic,
            'broker': self.connection.address,
        }
