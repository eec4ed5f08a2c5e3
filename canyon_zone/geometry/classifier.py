"""
Zone Classifier Module
======================

Stateless classification of a position against the safe zone.

Design:
- Pure functions (no state)
- Three proximity tiers: FAR, APPROACHING, INSIDE
- Onboarding recommendation is a separate radial check
- Thread-safe (no mutations)
"""

from enum import Enum
from typing import Optional

from canyon_zone.geometry.distance import haversine_m
from canyon_zone.geometry.shapes import Coordinate, Region
from canyon_zone.models import Mode


class ProximityTier(str, Enum):
    """Where a position sits relative to the safe zone."""

    FAR = "far"
    APPROACHING = "approaching"
    INSIDE = "inside"


class LocationMessage(str, Enum):
    """Status line shown on the map."""

    NEEDS_PERMISSION = "needs_permission"
    OUT_OF_RANGE = "out_of_range"
    NEARBY = "nearby"
    NONE = "none"


class ZoneClassifier:
    """
    Stateless classifier for positions against a Region.

    Design Philosophy:
    - All methods are static (no instance state)
    - Region injected on every call
    - Tier boundaries: rectangle edges count as INSIDE, the background
      radius itself counts as APPROACHING
    """

    @staticmethod
    def classify(region: Region, point: Coordinate) -> ProximityTier:
        """
        Classify a position.

        Args:
            region: Safe zone and radii
            point: Position to classify

        Returns:
            INSIDE if within the rectangle, APPROACHING if within the
            background radius of the center, FAR otherwise
        """
        if region.contains_point(point):
            return ProximityTier.INSIDE
        if haversine_m(point, region.center) <= region.background_radius_m:
            return ProximityTier.APPROACHING
        return ProximityTier.FAR

    @staticmethod
    def is_almost_there(region: Region, point: Coordinate) -> bool:
        """True within the "almost there" radius of the center (rectangle not required)."""
        return haversine_m(point, region.center) <= region.almost_there_radius_m

    @staticmethod
    def is_within_recommendation_range(region: Region, point: Coordinate) -> bool:
        """True if the position is close enough to suggest adventure mode."""
        return haversine_m(point, region.center) <= region.recommendation_radius_m

    @staticmethod
    def recommend_mode(region: Region, point: Optional[Coordinate]) -> Mode:
        """
        Mode to suggest during onboarding.

        Args:
            region: Safe zone and radii
            point: Current position, or None when no fix is available

        Returns:
            ADVENTURE within the recommendation radius, VIRTUAL_TOUR otherwise
        """
        if point is not None and ZoneClassifier.is_within_recommendation_range(region, point):
            return Mode.ADVENTURE
        return Mode.VIRTUAL_TOUR

    @staticmethod
    def location_message(
        permission_denied: bool,
        mode: Mode,
        tier: Optional[ProximityTier],
        almost_there: bool = False,
    ) -> LocationMessage:
        """
        Derive the map status message.

        Permission problems win. Range messages only apply in adventure
        mode with a known tier: outside the rectangle the message is
        NEARBY within the "almost there" radius, OUT_OF_RANGE beyond it.
        """
        if permission_denied:
            return LocationMessage.NEEDS_PERMISSION
        if mode != Mode.ADVENTURE or tier is None:
            return LocationMessage.NONE
        if tier == ProximityTier.INSIDE:
            return LocationMessage.NONE
        return LocationMessage.NEARBY if almost_there else LocationMessage.OUT_OF_RANGE
