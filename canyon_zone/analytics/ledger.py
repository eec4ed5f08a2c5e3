"""
Visit Ledger Module
===================

Stateful record of which structures the user has visited.

Design:
- Mutable state (structures, points, counters) owned here only
- Immutable outputs (Structure copies, VisitStatistics snapshots)
- Every mutation is handed to the store right away
- Not thread-safe on its own (the engine serializes access)
"""

import logging
from datetime import date
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from canyon_zone.analytics.stats import VisitStatistics
from canyon_zone.models import LandmarkPoint, NEVER_VISITED, NON_LANDMARK, Structure

logger = logging.getLogger(__name__)


class SortState(str, Enum):
    """Structure list filters."""

    ALL = "all"
    FAVORITES = "favorites"
    VISITED = "visited"
    UNVISITED = "unvisited"


class VisitLedger:
    """
    Records visits and derives statistics.

    State:
        - structures by number (dataset order preserved)
        - landmark points (visited flag mirrors the owning structure)
        - counters: total visited, distinct days, completions, last date
        - last visited structure (for the "you found it" popup)

    Usage:
        ledger = VisitLedger(structures, points, store=store)
        ledger.record_visit(7)
        stats = ledger.statistics()
    """

    def __init__(
        self,
        structures: Sequence[Structure],
        points: Sequence[LandmarkPoint],
        statistics: Optional[VisitStatistics] = None,
        store=None,  # DataStore
        today: Callable[[], date] = date.today,
    ):
        """
        Args:
            structures: Structures with their persisted progress
            points: Landmark points with their persisted flags
            statistics: Persisted counters (defaults to zero)
            store: Persistence sink, None keeps everything in memory
            today: Local calendar date source
        """
        self._structures: Dict[int, Structure] = {s.number: s.copy() for s in structures}
        self._points: List[LandmarkPoint] = list(points)
        self._store = store
        self._today = today
        self._last_visited: Optional[int] = None

        stats = statistics or VisitStatistics()
        self._total_visited = stats.total_visited_count
        self._distinct_days = stats.distinct_day_count
        self._all_visited = stats.all_structures_visited_count
        self._last_visit_date = stats.last_visit_date

    def __len__(self) -> int:
        return len(self._structures)

    def __repr__(self) -> str:
        return f"VisitLedger(structures={len(self._structures)}, {self.statistics()})"

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def record_visit(self, number: int) -> Optional[Structure]:
        """
        Mark a structure as visited.

        A structure is recorded once per reset cycle. Path points and
        unknown numbers are ignored.

        Args:
            number: Structure number

        Returns:
            Updated structure copy, or None when nothing was recorded
        """
        if number == NON_LANDMARK:
            return None
        structure = self._structures.get(number)
        if structure is None:
            logger.debug(f"Ignoring visit to unknown structure {number}")
            return None
        if structure.visited:
            return None

        structure.visited = True
        structure.visit_order = self._total_visited
        self._total_visited += 1
        self._last_visited = number

        today = self._today()
        if self._last_visit_date != today:
            self._distinct_days += 1
            self._last_visit_date = today

        if all(s.visited for s in self._structures.values()):
            self._all_visited += 1
            logger.info(f"🏆 Every structure visited ({self._all_visited} time(s))")

        self._points = [
            p.with_visited(True) if p.structure == number and not p.visited else p
            for p in self._points
        ]

        logger.info(f"📍 Visited structure {number} ({structure.title}), order={structure.visit_order}")
        self._persist(structures=True, points=True, statistics=True)
        return structure.copy()

    def mark_opened(self, number: int) -> bool:
        """
        Flag a structure's detail card as opened.

        Returns:
            True if the flag changed
        """
        structure = self._structures.get(number)
        if structure is None or structure.opened:
            return False
        structure.opened = True
        self._persist(structures=True)
        return True

    def toggle_liked(self, number: int) -> Optional[bool]:
        """
        Flip a structure's liked flag.

        Returns:
            New liked value, or None for an unknown structure
        """
        structure = self._structures.get(number)
        if structure is None:
            return None
        structure.liked = not structure.liked
        self._persist(structures=True)
        return structure.liked

    def reset_visits(self) -> None:
        """
        Start a new visit cycle.

        Clears visited/opened/visit order, the per-cycle counters and the
        point flags. Likes and the lifetime completion counter are kept.
        """
        for structure in self._structures.values():
            structure.visited = False
            structure.opened = False
            structure.visit_order = NEVER_VISITED

        self._points = [
            p.with_visited(False) if p.structure != NON_LANDMARK and p.visited else p
            for p in self._points
        ]

        self._total_visited = 0
        self._distinct_days = 0
        self._last_visit_date = None
        self._last_visited = None

        logger.info("🔄 Visits reset")
        self._persist(structures=True, points=True, statistics=True)

    def reset_likes(self) -> None:
        """Clear every liked flag."""
        for structure in self._structures.values():
            structure.liked = False
        logger.info("🔄 Likes reset")
        self._persist(structures=True)

    def dismiss_last_visited(self) -> None:
        """Clear the pending "last visited" notification."""
        self._last_visited = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def last_visited(self) -> Optional[int]:
        """Number of the most recently recorded structure (until dismissed)."""
        return self._last_visited

    def statistics(self) -> VisitStatistics:
        """Immutable counters snapshot."""
        return VisitStatistics(
            total_visited_count=self._total_visited,
            distinct_day_count=self._distinct_days,
            all_structures_visited_count=self._all_visited,
            last_visit_date=self._last_visit_date,
        )

    def structure(self, number: int) -> Optional[Structure]:
        structure = self._structures.get(number)
        return structure.copy() if structure is not None else None

    def structures(self) -> List[Structure]:
        """All structures in dataset order (copies)."""
        return [s.copy() for s in self._structures.values()]

    def points(self) -> List[LandmarkPoint]:
        return list(self._points)

    def visited_structures(self) -> List[Structure]:
        """Visited structures, most recent first."""
        return self.recently_visited(limit=None)

    def liked_structures(self) -> List[Structure]:
        return [s.copy() for s in self._structures.values() if s.liked]

    def recently_visited(self, limit: Optional[int] = 3) -> List[Structure]:
        """
        Latest visits first.

        Args:
            limit: Max structures, None for all
        """
        visited = sorted(
            (s for s in self._structures.values() if s.visit_order != NEVER_VISITED),
            key=lambda s: s.visit_order,
            reverse=True,
        )
        return [s.copy() for s in visited[:limit]]

    def recently_unopened(self, limit: Optional[int] = 3) -> List[Structure]:
        """Visited structures whose card was never opened, latest first."""
        unopened = sorted(
            (s for s in self._structures.values() if s.visited and not s.opened),
            key=lambda s: s.visit_order,
            reverse=True,
        )
        return [s.copy() for s in unopened[:limit]]

    def filter_structures(self, search: str = "", sort: SortState = SortState.ALL) -> List[Structure]:
        """
        Structures matching a search and a filter.

        Search matches the title (case-insensitive) or the number's digits.
        """
        needle = search.strip().lower()
        matches = [
            s for s in self._structures.values()
            if not needle or needle in s.title.lower() or needle in str(s.number)
        ]
        if sort == SortState.FAVORITES:
            matches = [s for s in matches if s.liked]
        elif sort == SortState.VISITED:
            matches = [s for s in matches if s.visited]
        elif sort == SortState.UNVISITED:
            matches = [s for s in matches if not s.visited]
        return [s.copy() for s in matches]

    def has_visited(self) -> bool:
        return any(s.visited for s in self._structures.values())

    def has_unvisited(self) -> bool:
        return any(not s.visited for s in self._structures.values())

    def has_liked(self) -> bool:
        return any(s.liked for s in self._structures.values())

    def has_unopened(self) -> bool:
        return any(s.visited and not s.opened for s in self._structures.values())

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _persist(self, structures: bool = False, points: bool = False, statistics: bool = False) -> None:
        """Hand changed collections to the store (store absorbs failures)."""
        if self._store is None:
            return
        if structures:
            self._store.save_structures(list(self._structures.values()))
        if points:
            self._store.save_points(self._points)
        if statistics:
            self._store.save_statistics(self.statistics())
