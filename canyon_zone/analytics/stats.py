"""
Visit Statistics Module
=======================

Immutable snapshot of the user's visit progress.

Design:
- Frozen dataclass (thread-safe read)
- Value object (no identity)
- Serializable (dates as ISO yyyy-mm-dd strings)
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class VisitStatistics:
    """
    Aggregate visit counters.

    Attributes:
        total_visited_count: Structures visited in the current cycle
        distinct_day_count: Calendar days with at least one visit
        all_structures_visited_count: Times every structure was visited
            (lifetime, survives visit resets)
        last_visit_date: Local calendar date of the latest visit
    """

    total_visited_count: int = 0
    distinct_day_count: int = 0
    all_structures_visited_count: int = 0
    last_visit_date: Optional[date] = None

    def __post_init__(self):
        """Validate counters."""
        for name in ('total_visited_count', 'distinct_day_count', 'all_structures_visited_count'):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")

    def __str__(self) -> str:
        """Human-readable representation."""
        return (
            f"visited={self.total_visited_count}, days={self.distinct_day_count}, "
            f"completions={self.all_structures_visited_count}"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            'total_visited_count': self.total_visited_count,
            'distinct_day_count': self.distinct_day_count,
            'all_structures_visited_count': self.all_structures_visited_count,
            'last_visit_date': self.last_visit_date.isoformat() if self.last_visit_date else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VisitStatistics':
        """
        Deserialize from dict.

        Raises:
            ValueError: If values are invalid
        """
        try:
            raw_date = data.get('last_visit_date')
            return cls(
                total_visited_count=int(data.get('total_visited_count', 0)),
                distinct_day_count=int(data.get('distinct_day_count', 0)),
                all_structures_visited_count=int(data.get('all_structures_visited_count', 0)),
                last_visit_date=date.fromisoformat(raw_date) if raw_date else None,
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise ValueError(f"Invalid VisitStatistics data: {e}")
