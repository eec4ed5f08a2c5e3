"""
MQTT Publishers
==============

Bounded Context: Message Production

Public API
----------
    BrokerConnection: paho client, topic and send counters
    VisitPublisher: Location log publisher
"""

from .connection import BrokerConnection
from .visit import VisitPublisher

__all__ = [
    'BrokerConnection',
    'VisitPublisher',
]
