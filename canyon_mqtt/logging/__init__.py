"""
Structured Logging for Canyon MQTT
==================================

Bounded Context: Observability

JSON-structured logging for the visit-logging publisher.

Public API
----------
    LogEvent: Typed event names (enum)
    StructuredLogger: JSON logger implementation
    create_logger: Factory function

Example:
    >>> from canyon_mqtt.logging import StructuredLogger, LogEvent
    >>> logger = StructuredLogger(component="visits")
    >>> logger.info(
    ...     event=LogEvent.VISIT_LOG_SERIALIZED,
    ...     message="Serialized location log",
    ...     metadata={'structure': 7}
    ... )
"""

from .events import LogEvent
from .structured import StructuredLogger, create_logger

__all__ = [
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
