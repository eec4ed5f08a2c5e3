"""
Geometry Layer
==============

Bounded Context: Pure geographic shapes and spatial queries.

Responsibilities:
- Coordinate and safe-zone representation (immutable)
- Great-circle distance, rectangle containment
- Proximity tiers and onboarding recommendation
- Nearest landmark lookup
- NO visit state, NO persistence

Design Philosophy:
- Pure functions where possible
- Immutable data structures
- Fail-fast validation
- Zero side effects
"""

from canyon_zone.geometry.shapes import Coordinate, Region, POLY_CANYON
from canyon_zone.geometry.distance import EARTH_RADIUS_M, haversine_m, haversine_many, contains
from canyon_zone.geometry.classifier import ZoneClassifier, ProximityTier, LocationMessage
from canyon_zone.geometry.resolver import NearestLandmarkResolver, Resolution

__all__ = [
    "Coordinate",
    "Region",
    "POLY_CANYON",
    "EARTH_RADIUS_M",
    "haversine_m",
    "haversine_many",
    "contains",
    "ZoneClassifier",
    "ProximityTier",
    "LocationMessage",
    "NearestLandmarkResolver",
    "Resolution",
]
