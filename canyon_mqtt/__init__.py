"""
Canyon MQTT Communication Package
=================================

Bounded Context: Remote visit logging

Ships anonymous location logs (nearest landmark point, timestamp,
per-install user id) to an MQTT broker. The tracking engine hands
messages to a queue and never waits on the broker.

Architecture:
- schemas/: Immutable message types
- publishers/: Message producers (VisitPublisher)
- logging/: Structured JSON logging for observability

Public API
----------
Schemas:
    Timestamp, VisitLogMessage

Publishers:
    BrokerConnection, VisitPublisher

Logging:
    LogEvent, StructuredLogger, create_logger

Example:
    >>> from canyon_mqtt import VisitPublisher, create_logger
    >>> publisher = VisitPublisher(
    ...     broker_host="localhost",
    ...     topic="canyon/user_locations",
    ...     logger=create_logger("visits"),
    ... )
    >>> publisher.connect()
"""

from .schemas import Timestamp, VisitLogMessage, SCHEMA_VERSION
from .publishers import BrokerConnection, VisitPublisher
from .logging import LogEvent, StructuredLogger, create_logger

__all__ = [
    # Schemas
    'Timestamp',
    'VisitLogMessage',
    'SCHEMA_VERSION',
    # Publishers
    'BrokerConnection',
    'VisitPublisher',
    # Logging
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]

__version__ = '1.0.0'
