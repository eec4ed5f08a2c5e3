"""
Analytics Layer
===============

Bounded Context: Visit progress and update pacing.

Responsibilities:
- Record visits, likes and opened cards (mutable state)
- Derive statistics (immutable snapshots)
- Drop position updates that arrive too fast

Design Philosophy:
- Mutable accumulators (VisitLedger, UpdateThrottle)
- Immutable outputs (VisitStatistics, Structure copies)
- Caller synchronizes if multi-threaded
"""

from canyon_zone.analytics.ledger import VisitLedger, SortState
from canyon_zone.analytics.stats import VisitStatistics
from canyon_zone.analytics.throttle import UpdateThrottle

__all__ = [
    "VisitLedger",
    "SortState",
    "VisitStatistics",
    "UpdateThrottle",
]
