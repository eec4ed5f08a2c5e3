"""
Canyon MQTT Schemas
===================

Bounded Context: Data Structures

Design:
- Frozen dataclasses (immutability)
- to_dict() / from_dict() for JSON
- Schema versioning for evolution

Public API
----------
    Timestamp: ISO 8601 timestamp wrapper
    VisitLogMessage: Anonymous location log entry
"""

from .common import Timestamp
from .visit_log import VisitLogMessage, SCHEMA_VERSION

__all__ = [
    'Timestamp',
    'VisitLogMessage',
    'SCHEMA_VERSION',
]
