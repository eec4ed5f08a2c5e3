"""
Canyon Zone v1.0
================

Bounded Context: Where the user is, and what they have seen.

Design Philosophy:
- Separation of Concerns: Geometry and Analytics separated
- Geometry is pure, analytics owns the mutable progress
- Fail fast on malformed data, stay quiet on the tracking path

Architecture:

    canyon_zone/
    ├── models.py          # Structure, LandmarkPoint, Mode
    │
    ├── geometry/          # Pure geometry (immutable, stateless)
    │   ├── shapes.py      # Coordinate, Region
    │   ├── distance.py    # haversine_m, contains
    │   ├── classifier.py  # ZoneClassifier, ProximityTier
    │   └── resolver.py    # NearestLandmarkResolver
    │
    └── analytics/         # Progress (stateful)
        ├── ledger.py      # VisitLedger
        ├── stats.py       # VisitStatistics
        └── throttle.py    # UpdateThrottle

Usage:

    # 1. Classify (stateless)
    from canyon_zone import POLY_CANYON, Coordinate, ZoneClassifier

    here = Coordinate(35.3139, -120.6527)
    tier = ZoneClassifier.classify(POLY_CANYON, here)

    # 2. Resolve nearest landmark
    from canyon_zone import NearestLandmarkResolver

    resolver = NearestLandmarkResolver(points)
    hit = resolver.nearest(here)

    # 3. Record (stateful)
    from canyon_zone import VisitLedger

    ledger = VisitLedger(structures, points)
    if hit and hit.distance_m <= POLY_CANYON.visit_radius_m:
        ledger.record_visit(hit.structure)
    stats = ledger.statistics()
"""

# Geometry Layer (immutable, stateless). Loaded before models, which import shapes.
from canyon_zone.geometry.shapes import Coordinate, Region, POLY_CANYON
from canyon_zone.geometry.distance import haversine_m, contains
from canyon_zone.geometry.classifier import ZoneClassifier, ProximityTier, LocationMessage
from canyon_zone.geometry.resolver import NearestLandmarkResolver, Resolution

# Models
from canyon_zone.models import Mode, Structure, LandmarkPoint, NON_LANDMARK, NEVER_VISITED

# Analytics Layer (stateful)
from canyon_zone.analytics.ledger import VisitLedger, SortState
from canyon_zone.analytics.stats import VisitStatistics
from canyon_zone.analytics.throttle import UpdateThrottle

__all__ = [
    # Models
    "Mode",
    "Structure",
    "LandmarkPoint",
    "NON_LANDMARK",
    "NEVER_VISITED",
    # Geometry
    "Coordinate",
    "Region",
    "POLY_CANYON",
    "haversine_m",
    "contains",
    "ZoneClassifier",
    "ProximityTier",
    "LocationMessage",
    "NearestLandmarkResolver",
    "Resolution",
    # Analytics
    "VisitLedger",
    "SortState",
    "VisitStatistics",
    "UpdateThrottle",
]

__version__ = "1.0.0"
