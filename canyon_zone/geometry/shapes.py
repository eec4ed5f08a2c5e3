"""
Geographic Shapes Module
========================

Pure geographic representations - NO state, NO side effects.

Design:
- Immutable shapes (frozen dataclass pattern)
- Degrees in, degrees out (WGS84 latitude/longitude)
- Rectangle containment is inclusive on every edge
- Thread-safe by design (immutability)
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class Coordinate:
    """
    Immutable geographic position.

    Attributes:
        latitude: Degrees north, in [-90, 90]
        longitude: Degrees east, in [-180, 180]

    Example:
        >>> Coordinate(35.31461, -120.65238).as_tuple()
        (35.31461, -120.65238)
    """

    latitude: float
    longitude: float

    def __post_init__(self):
        """Validate ranges."""
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            raise ValueError(f"Coordinate must be finite, got ({self.latitude}, {self.longitude})")
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude must be in [-90, 90], got {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude must be in [-180, 180], got {self.longitude}")

    def as_tuple(self) -> Tuple[float, float]:
        """(latitude, longitude) pair."""
        return (self.latitude, self.longitude)

    def to_dict(self) -> Dict[str, float]:
        """Serialize to JSON-compatible dict."""
        return {'latitude': self.latitude, 'longitude': self.longitude}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Coordinate':
        """
        Deserialize from dict.

        Raises:
            ValueError: If required keys missing or invalid values
        """
        try:
            return cls(latitude=float(data['latitude']), longitude=float(data['longitude']))
        except KeyError as e:
            raise ValueError(f"Missing required Coordinate field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid Coordinate data: {e}")


@dataclass(frozen=True)
class Region:
    """
    Immutable safe zone with the radii used around it.

    The rectangle is axis-aligned in latitude/longitude. The center point
    anchors the radial checks (background escalation, onboarding
    recommendation).

    Attributes:
        bottom_left: South-west corner
        top_right: North-east corner
        center: Reference point for radial checks
        background_radius_m: Radius that qualifies for background tracking
        recommendation_radius_m: Radius that recommends adventure mode
        almost_there_radius_m: Radius for the "almost there" map message
        visit_radius_m: Max distance to a landmark point that counts as a visit
    """

    bottom_left: Coordinate
    top_right: Coordinate
    center: Coordinate
    background_radius_m: float = 500.34
    recommendation_radius_m: float = 28280.0
    almost_there_radius_m: float = 370.0
    visit_radius_m: float = 20.0

    def __post_init__(self):
        """Validate corners and radii."""
        if self.bottom_left.latitude > self.top_right.latitude:
            raise ValueError(
                f"bottom_left latitude {self.bottom_left.latitude} is north of "
                f"top_right latitude {self.top_right.latitude}"
            )
        if self.bottom_left.longitude > self.top_right.longitude:
            raise ValueError(
                f"bottom_left longitude {self.bottom_left.longitude} is east of "
                f"top_right longitude {self.top_right.longitude}"
            )
        for name in (
            'background_radius_m', 'recommendation_radius_m', 'almost_there_radius_m', 'visit_radius_m'
        ):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

    @classmethod
    def from_corners(
        cls,
        corner_a: Coordinate,
        corner_b: Coordinate,
        center: Optional[Coordinate] = None,
        **radii: float
    ) -> 'Region':
        """
        Build a region from any two opposite corners.

        Corners are normalized to (bottom_left, top_right). When no center
        is given the rectangle midpoint is used.

        Example:
            >>> region = Region.from_corners(
            ...     Coordinate(35.0, -120.0), Coordinate(35.1, -120.1)
            ... )
            >>> region.bottom_left
            Coordinate(latitude=35.0, longitude=-120.1)
        """
        bottom_left = Coordinate(
            min(corner_a.latitude, corner_b.latitude),
            min(corner_a.longitude, corner_b.longitude),
        )
        top_right = Coordinate(
            max(corner_a.latitude, corner_b.latitude),
            max(corner_a.longitude, corner_b.longitude),
        )
        if center is None:
            center = Coordinate(
                (bottom_left.latitude + top_right.latitude) / 2,
                (bottom_left.longitude + top_right.longitude) / 2,
            )
        return cls(bottom_left=bottom_left, top_right=top_right, center=center, **radii)

    def contains_point(self, point: Coordinate) -> bool:
        """
        Check if a point lies within the rectangle (edges included).

        Args:
            point: Position to test

        Returns:
            True if inside or on the boundary
        """
        return (
            self.bottom_left.latitude <= point.latitude <= self.top_right.latitude
            and self.bottom_left.longitude <= point.longitude <= self.top_right.longitude
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'bottom_left': self.bottom_left.to_dict(),
            'top_right': self.top_right.to_dict(),
            'center': self.center.to_dict(),
            'background_radius_m': self.background_radius_m,
            'recommendation_radius_m': self.recommendation_radius_m,
            'almost_there_radius_m': self.almost_there_radius_m,
            'visit_radius_m': self.visit_radius_m,
        }


# Poly Canyon safe zone and radii
POLY_CANYON = Region(
    bottom_left=Coordinate(35.31214, -120.65529),
    top_right=Coordinate(35.31813, -120.65110),
    center=Coordinate(35.31461, -120.65238),
)
