"""
Visit Log Message Schema
========================

Bounded Context: Remote location logging

One message per change of nearest landmark point while the user walks
the canyon in adventure mode. The position reported is the landmark
point's surveyed coordinate, never the raw fix.

Message Flow:
    VisitTrackingEngine → VisitLogMessage → VisitPublisher → MQTT
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .common import Timestamp

SCHEMA_VERSION = "1.0"


@dataclass(frozen=True)
class VisitLogMessage:
    """
    Anonymous location log entry.

    Attributes:
        schema_version: Message schema version
        timestamp: When the position was accepted
        user_id: Random per-install identifier
        latitude: Landmark point latitude
        longitude: Landmark point longitude
        point: Landmark point number
        structure: Structure number, None for path points

    Invariants:
        - user_id non-empty
        - latitude in [-90, 90], longitude in [-180, 180]
    """
    schema_version: str
    timestamp: Timestamp
    user_id: str
    latitude: float
    longitude: float
    point: int
    structure: Optional[int] = None

    def __post_init__(self):
        """Validate invariants."""
        if not self.user_id:
            raise ValueError("user_id cannot be empty")
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude must be in [-90, 90], got {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude must be in [-180, 180], got {self.longitude}")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'schema_version': self.schema_version,
            'timestamp': self.timestamp.to_dict(),
            'userId': self.user_id,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'point': self.point,
            'structure': self.structure,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VisitLogMessage':
        """
        Deserialize from dict.

        Raises:
            ValueError: If required keys missing or invalid values
        """
        try:
            structure = data.get('structure')
            return cls(
                schema_version=str(data['schema_version']),
                timestamp=Timestamp(value=data['timestamp']),
                user_id=str(data['userId']),
                latitude=float(data['latitude']),
                longitude=float(data['longitude']),
                point=int(data['point']),
                structure=int(structure) if structure is not None else None,
            )
        except KeyError as e:
            raise ValueError(f"Missing required VisitLogMessage field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid VisitLogMessage data: {e}")
