"""
DataStore - versioned persistence of the user's progress.

Responsibilities:
  - Decide at startup whether persisted progress is still valid for the
    bundled dataset (version tag comparison)
  - Carry progress across dataset upgrades (matched by structure number
    and map point number)
  - Serialize every mutation as a whole collection (JSON, UTF-8)
  - Keep the in-memory state authoritative when a write fails, and retry
    failed writes on the next save

Keys:
    dataVersion      dataset version the persisted blobs belong to
    structures       list of Structure dicts
    mapPoints        list of LandmarkPoint dicts
    visitStatistics  VisitStatistics dict
    localUserID      random per-install identifier

Threading: NOT thread-safe (the engine serializes access)
"""

import json
import logging
import uuid
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional

from canyon_engine.dataset import Dataset
from canyon_engine.errors import StorageError, VersionMismatchError
from canyon_engine.storage import KeyValueStorage
from canyon_zone import LandmarkPoint, NEVER_VISITED, Structure, VisitStatistics

logger = logging.getLogger(__name__)

KEY_VERSION = "dataVersion"
KEY_STRUCTURES = "structures"
KEY_POINTS = "mapPoints"
KEY_STATISTICS = "visitStatistics"
KEY_USER_ID = "localUserID"

# The version tag goes last: it vouches for the blobs before it
PROGRESS_KEYS = (KEY_STRUCTURES, KEY_POINTS, KEY_STATISTICS, KEY_VERSION)


@dataclass(frozen=True)
class LoadedState:
    """
    Result of DataStore.load().

    Attributes:
        structures: Structures with progress applied
        points: Map points with visited flags applied
        statistics: Visit counters
        source: "persisted", "migrated", "fresh" or "fallback"
        persist: False when mutations must not be written back (the
            stored blobs are newer than this state)
    """

    structures: List[Structure]
    points: List[LandmarkPoint]
    statistics: VisitStatistics
    source: str
    persist: bool = True


class DataStore:
    """
    Persistence and versioning over a KeyValueStorage.

    Usage:
        store = DataStore(FileStorage(Path("~/.canyon")), dataset)
        state = store.load()
        ledger = VisitLedger(state.structures, state.points, state.statistics, store=store)
    """

    def __init__(self, storage: KeyValueStorage, dataset: Dataset):
        self.storage = storage
        self.dataset = dataset
        self._pending: Dict[str, bytes] = {}
        self._user_id: Optional[str] = None
        self._failures = 0

    def __repr__(self) -> str:
        return f"DataStore(dataset_version={self.dataset.version}, dirty={sorted(self._pending)})"

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def load(self) -> LoadedState:
        """
        Load progress for the bundled dataset.

        Same version: persisted blobs are used as stored (reseeded if a
        blob is missing or corrupt). Different version: static content
        comes from the dataset, progress is carried over by number.
        """
        stored_version = self._read_json(KEY_VERSION)
        stored_structures = self._read_structures()
        stored_points = self._read_points()
        stored_stats = self._read_statistics()

        if stored_version is not None and str(stored_version) == self.dataset.version:
            if stored_structures is not None and stored_points is not None:
                logger.info(f"Loaded persisted progress (dataset v{self.dataset.version})")
                return LoadedState(
                    structures=stored_structures,
                    points=stored_points,
                    statistics=stored_stats or VisitStatistics(),
                    source="persisted",
                )
            logger.warning("Persisted progress incomplete or corrupt, reseeding from dataset")
            return self._seed(stored_stats, source="fresh")

        if stored_version is None and stored_structures is None:
            logger.info(f"First run, seeding dataset v{self.dataset.version}")
            return self._seed(None, source="fresh")

        logger.info(f"Dataset upgraded {stored_version} -> {self.dataset.version}, carrying progress over")
        structures, points, statistics = self._migrate(stored_structures, stored_stats)
        try:
            self._persist_all(structures, points, statistics)
            self._write_version()
        except VersionMismatchError as e:
            logger.error(f"Version tag did not read back after migration: {e}, using bundled defaults")
            # Migrated blobs stay under the old tag so the next launch migrates again
            self._pending.pop(KEY_VERSION, None)
            return LoadedState(
                structures=self.dataset.fresh_structures(),
                points=self.dataset.fresh_points(),
                statistics=VisitStatistics(),
                source="fallback",
                persist=False,
            )
        return LoadedState(structures=structures, points=points, statistics=statistics, source="migrated")

    def _seed(self, previous: Optional[VisitStatistics], source: str) -> LoadedState:
        structures = self.dataset.fresh_structures()
        points = self.dataset.fresh_points()
        # Completion count is lifetime progress, keep it across reseeds
        statistics = VisitStatistics(
            all_structures_visited_count=previous.all_structures_visited_count if previous else 0
        )
        self._persist_all(structures, points, statistics)
        try:
            self._write_version()
        except VersionMismatchError as e:
            logger.error(f"Version tag did not read back: {e}")
        return LoadedState(structures=structures, points=points, statistics=statistics, source=source)

    def _migrate(
        self,
        old_structures: Optional[List[Structure]],
        old_stats: Optional[VisitStatistics],
    ):
        progress = {s.number: s.dynamic_state() for s in (old_structures or [])}
        structures = []
        for fresh in self.dataset.fresh_structures():
            state = progress.get(fresh.number)
            structures.append(replace(fresh, **state) if state else fresh)

        # Renumber surviving visits 0..n-1 in their original order
        visited = sorted((s for s in structures if s.visited), key=lambda s: s.visit_order)
        for order, structure in enumerate(visited):
            structure.visit_order = order
        for structure in structures:
            if not structure.visited:
                structure.visit_order = NEVER_VISITED

        # Point flags follow their structure so the two never disagree
        visited_numbers = {s.number for s in visited}
        points = [
            p.with_visited(p.is_landmark and p.structure in visited_numbers)
            for p in self.dataset.points
        ]

        old_stats = old_stats or VisitStatistics()
        statistics = replace(
            old_stats,
            total_visited_count=len(visited),
            distinct_day_count=old_stats.distinct_day_count if visited else 0,
            last_visit_date=old_stats.last_visit_date if visited else None,
        )
        dropped = set(progress) - {s.number for s in structures}
        if dropped:
            logger.info(f"Structures removed by the upgrade: {sorted(dropped)}")
        return structures, points, statistics

    # ------------------------------------------------------------------
    # Mutations (called by the visit ledger)
    # ------------------------------------------------------------------

    def save_structures(self, structures: List[Structure]) -> bool:
        return self._write(KEY_STRUCTURES, [s.to_dict() for s in structures])

    def save_points(self, points: List[LandmarkPoint]) -> bool:
        return self._write(KEY_POINTS, [p.to_dict() for p in points])

    def save_statistics(self, statistics: VisitStatistics) -> bool:
        return self._write(KEY_STATISTICS, statistics.to_dict())

    def flush(self) -> bool:
        """
        Retry writes that failed earlier.

        Returns:
            True when nothing is left pending
        """
        for key in sorted(self._pending, key=lambda k: k == KEY_VERSION):
            # Tag waits for the blobs it vouches for
            if key == KEY_VERSION and any(k in self._pending for k in PROGRESS_KEYS[:-1]):
                continue
            try:
                self.storage.set(key, self._pending[key])
            except StorageError as e:
                self._failures += 1
                logger.warning(f"⚠️ Persisting '{key}' failed, will retry: {e}")
                continue
            del self._pending[key]
        return not self._pending

    @property
    def dirty_keys(self) -> List[str]:
        return sorted(self._pending)

    @property
    def failure_count(self) -> int:
        return self._failures

    def full_reset(self) -> LoadedState:
        """
        Remove all persisted progress and reseed from the dataset.

        The install id is kept. A key that cannot be removed is
        overwritten by the reseed; writes that fail stay pending for
        flush(). Never raises.

        Returns:
            Fresh state (counters zeroed, including completions)
        """
        self._pending = {k: v for k, v in self._pending.items() if k == KEY_USER_ID}
        for key in PROGRESS_KEYS:
            try:
                self.storage.remove(key)
            except StorageError as e:
                self._failures += 1
                logger.warning(f"⚠️ Removing '{key}' failed, overwriting with defaults: {e}")
        logger.info("🗑️ Persisted progress removed")
        return self._seed(None, source="fresh")

    def user_id(self) -> str:
        """Per-install random identifier, created on first use."""
        if self._user_id is not None:
            return self._user_id

        stored = self._read_json(KEY_USER_ID)
        if isinstance(stored, str) and stored:
            self._user_id = stored
            return stored

        self._user_id = str(uuid.uuid4())
        self._write(KEY_USER_ID, self._user_id)
        return self._user_id

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _persist_all(self, structures, points, statistics) -> None:
        self.save_structures(structures)
        self.save_points(points)
        self.save_statistics(statistics)

    def _write_version(self) -> None:
        """Write the version tag and read it back."""
        self._write(KEY_VERSION, self.dataset.version)
        if KEY_VERSION in self._pending:
            raise VersionMismatchError(f"could not write version tag {self.dataset.version!r}")
        readback = self._read_json(KEY_VERSION)
        if readback is None or str(readback) != self.dataset.version:
            raise VersionMismatchError(f"wrote {self.dataset.version!r}, read back {readback!r}")

    def _write(self, key: str, value: Any) -> bool:
        self._pending[key] = json.dumps(value).encode("utf-8")
        return self.flush()

    def _read_json(self, key: str) -> Any:
        try:
            raw = self.storage.get(key)
        except StorageError as e:
            logger.warning(f"⚠️ Reading '{key}' failed: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"⚠️ Stored '{key}' is corrupt: {e}")
            return None

    def _read_structures(self) -> Optional[List[Structure]]:
        data = self._read_json(KEY_STRUCTURES)
        if data is None:
            return None
        try:
            return [Structure.from_dict(item) for item in data]
        except (TypeError, ValueError) as e:
            logger.warning(f"⚠️ Stored structures are invalid: {e}")
            return None

    def _read_points(self) -> Optional[List[LandmarkPoint]]:
        data = self._read_json(KEY_POINTS)
        if data is None:
            return None
        try:
            return [LandmarkPoint.from_dict(item) for item in data]
        except (TypeError, ValueError) as e:
            logger.warning(f"⚠️ Stored map points are invalid: {e}")
            return None

    def _read_statistics(self) -> Optional[VisitStatistics]:
        data = self._read_json(KEY_STATISTICS)
        if data is None:
            return None
        try:
            return VisitStatistics.from_dict(data)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(f"⚠️ Stored statistics are invalid: {e}")
            return None
