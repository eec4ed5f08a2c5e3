"""
Test Persistence and Versioning
===============================

Storage backends, DataStore startup decisions (first run, same version,
dataset upgrade, corrupt blobs) and failed-write retry.

Usage:
    pytest test_store.py
"""

import json
from datetime import date

import pytest

from canyon_engine import (
    DataStore,
    Dataset,
    DatasetError,
    FileStorage,
    MemoryStorage,
    StorageError,
)
from canyon_engine.store import KEY_POINTS, KEY_STATISTICS, KEY_STRUCTURES, KEY_USER_ID, KEY_VERSION
from canyon_zone import NON_LANDMARK, Coordinate, LandmarkPoint, Structure, VisitLedger


def make_dataset(version="1", numbers=(1, 2, 3)):
    structures = tuple(Structure(n, f"Structure {n}", description=f"v{version}") for n in numbers)
    points = tuple(
        LandmarkPoint(n, Coordinate(35.0 + n * 0.001, -120.0), structure=n) for n in numbers
    ) + (LandmarkPoint(100, Coordinate(35.0, -120.0), structure=NON_LANDMARK),)
    return Dataset(version=version, structures=structures, points=points)


def ledger_for(store, state):
    return VisitLedger(
        state.structures, state.points, state.statistics,
        store=store, today=lambda: date(2026, 10, 18),
    )


class FlakyStorage(MemoryStorage):
    """MemoryStorage whose writes can be switched off."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail = False

    def set(self, key, value):
        if self.fail:
            raise StorageError("disk full")
        super().set(key, value)


class StuckVersionStorage(MemoryStorage):
    """Silently keeps whatever version tag it was created with."""

    def set(self, key, value):
        if key == KEY_VERSION:
            return
        super().set(key, value)


# ─────────────────────────────────────────────────────────────────────
# Storage backends
# ─────────────────────────────────────────────────────────────────────

def test_file_storage_round_trip(tmp_path):
    storage = FileStorage(tmp_path / "progress")

    assert storage.get("structures") is None
    storage.set("structures", b"[1, 2]")
    storage.set("dataVersion", b'"1"')

    assert storage.get("structures") == b"[1, 2]"
    assert storage.keys() == ["dataVersion", "structures"]

    storage.remove("structures")
    storage.remove("structures")
    assert storage.get("structures") is None
    assert FileStorage(tmp_path / "progress").get("dataVersion") == b'"1"'


def test_file_storage_rejects_bad_keys(tmp_path):
    storage = FileStorage(tmp_path)
    for key in ("", "../escape", ".hidden", "a\\b"):
        with pytest.raises(StorageError):
            storage.set(key, b"x")


def test_memory_storage():
    storage = MemoryStorage({"a": b"1"})
    storage.set("b", b"2")
    storage.remove("a")
    assert storage.keys() == ["b"]
    assert storage.get("a") is None


# ─────────────────────────────────────────────────────────────────────
# Dataset validation
# ─────────────────────────────────────────────────────────────────────

def test_dataset_rejects_dangling_and_duplicates():
    with pytest.raises(DatasetError):
        Dataset(
            version="1",
            structures=(Structure(1, "A"),),
            points=(LandmarkPoint(0, Coordinate(35.0, -120.0), structure=7),),
        )
    with pytest.raises(DatasetError):
        Dataset(version="1", structures=(Structure(1, "A"), Structure(1, "B")), points=())
    with pytest.raises(DatasetError):
        Dataset(version="", structures=(), points=())


def test_dataset_from_dict_missing_key():
    with pytest.raises(DatasetError):
        Dataset.from_dict({"version": "1", "structures": []})


# ─────────────────────────────────────────────────────────────────────
# DataStore startup
# ─────────────────────────────────────────────────────────────────────

def test_first_run_seeds_dataset():
    storage = MemoryStorage()
    state = DataStore(storage, make_dataset()).load()

    assert state.source == "fresh"
    assert [s.number for s in state.structures] == [1, 2, 3]
    assert not any(s.visited for s in state.structures)
    assert json.loads(storage.get(KEY_VERSION)) == "1"
    for key in (KEY_STRUCTURES, KEY_POINTS, KEY_STATISTICS):
        assert storage.get(key) is not None


def test_same_version_restores_progress():
    storage = MemoryStorage()
    dataset = make_dataset()
    store = DataStore(storage, dataset)
    ledger = ledger_for(store, store.load())
    ledger.record_visit(2)
    ledger.toggle_liked(3)

    state = DataStore(storage, dataset).load()

    assert state.source == "persisted"
    by_number = {s.number: s for s in state.structures}
    assert by_number[2].visited and by_number[2].visit_order == 0
    assert by_number[3].liked
    assert state.statistics.total_visited_count == 1
    assert state.statistics.last_visit_date == date(2026, 10, 18)
    assert [p.number for p in state.points if p.visited] == [2]


def test_upgrade_carries_progress_by_number():
    storage = MemoryStorage()
    store = DataStore(storage, make_dataset("1", (1, 2, 3)))
    ledger = ledger_for(store, store.load())
    ledger.record_visit(2)
    ledger.record_visit(1)
    ledger.record_visit(3)
    ledger.toggle_liked(3)
    ledger.mark_opened(1)

    # v2 drops structure 2 and adds structure 4
    state = DataStore(storage, make_dataset("2", (1, 3, 4))).load()

    assert state.source == "migrated"
    by_number = {s.number: s for s in state.structures}
    assert by_number[1].description == "v2"
    assert by_number[1].opened
    assert by_number[1].visit_order == 0
    assert by_number[3].visit_order == 1
    assert by_number[3].liked
    assert not by_number[4].visited
    assert state.statistics.total_visited_count == 2
    assert state.statistics.all_structures_visited_count == 1
    assert {p.number for p in state.points if p.visited} == {1, 3}
    assert json.loads(storage.get(KEY_VERSION)) == "2"


def test_corrupt_blob_reseeds_and_keeps_completions():
    storage = MemoryStorage()
    dataset = make_dataset()
    store = DataStore(storage, dataset)
    ledger = ledger_for(store, store.load())
    for number in (1, 2, 3):
        ledger.record_visit(number)

    storage.set(KEY_STRUCTURES, b"{not json")
    state = DataStore(storage, dataset).load()

    assert state.source == "fresh"
    assert not any(s.visited for s in state.structures)
    assert state.statistics.all_structures_visited_count == 1
    assert state.statistics.total_visited_count == 0


def test_unreadable_version_tag_falls_back_to_defaults():
    dataset = make_dataset("1")
    storage = StuckVersionStorage({KEY_VERSION: b'"0"'})
    storage.set(KEY_STRUCTURES, json.dumps([s.to_dict() for s in dataset.structures]).encode())

    state = DataStore(storage, make_dataset("2")).load()

    assert state.source == "fallback"
    assert not any(s.visited for s in state.structures)


# ─────────────────────────────────────────────────────────────────────
# Writes
# ─────────────────────────────────────────────────────────────────────

def test_failed_writes_are_retried():
    storage = FlakyStorage()
    store = DataStore(storage, make_dataset())
    ledger = ledger_for(store, store.load())

    storage.fail = True
    visited = ledger.record_visit(1)

    # In-memory state stays authoritative
    assert visited is not None
    assert ledger.structure(1).visited
    assert store.dirty_keys == sorted([KEY_POINTS, KEY_STATISTICS, KEY_STRUCTURES])
    assert store.failure_count > 0

    storage.fail = False
    assert store.flush()
    assert store.dirty_keys == []
    saved = json.loads(storage.get(KEY_STRUCTURES))
    assert saved[0]["visited"] is True


def test_full_reset_keeps_user_id():
    storage = MemoryStorage()
    dataset = make_dataset()
    store = DataStore(storage, dataset)
    ledger = ledger_for(store, store.load())
    ledger.record_visit(1)
    user_id = store.user_id()

    state = store.full_reset()

    assert state.source == "fresh"
    assert not any(s.visited for s in state.structures)
    assert DataStore(storage, dataset).user_id() == user_id
    reloaded = DataStore(storage, dataset).load()
    assert reloaded.source == "persisted"
    assert not any(s.visited for s in reloaded.structures)
    assert reloaded.statistics.total_visited_count == 0


class StickyStorage(MemoryStorage):
    """Refuses to remove the keys it was told to keep."""

    def __init__(self, stuck=()):
        super().__init__()
        self.stuck = set(stuck)

    def remove(self, key):
        if key in self.stuck:
            raise StorageError("read-only")
        super().remove(key)


def test_full_reset_survives_failed_removal():
    storage = StickyStorage(stuck={KEY_STRUCTURES})
    dataset = make_dataset()
    store = DataStore(storage, dataset)
    ledger = ledger_for(store, store.load())
    ledger.record_visit(2)

    state = store.full_reset()

    assert not any(s.visited for s in state.structures)
    assert store.failure_count == 1
    assert store.dirty_keys == []
    # The stuck blob was overwritten, so a restart does not bring progress back
    reloaded = DataStore(storage, dataset).load()
    assert not any(s.visited for s in reloaded.structures)


def test_version_tag_waits_for_pending_blobs():
    storage = FlakyStorage()
    store = DataStore(storage, make_dataset("1"))
    store.load()

    storage.fail = True
    store.full_reset()
    assert KEY_VERSION in store.dirty_keys
    assert storage.get(KEY_VERSION) is None

    storage.fail = False
    assert store.flush()
    assert json.loads(storage.get(KEY_VERSION)) == "1"


def test_fallback_state_is_not_persisted():
    storage = StuckVersionStorage({KEY_VERSION: b'"1"'})
    store = DataStore(storage, make_dataset("1"))
    ledger = ledger_for(store, store.load())
    ledger.record_visit(1)
    ledger.record_visit(2)

    upgraded = DataStore(storage, make_dataset("2"))
    state = upgraded.load()

    assert state.source == "fallback"
    assert not state.persist
    assert KEY_VERSION not in upgraded.dirty_keys
    # Migrated progress is still on disk for the next launch
    saved = {s["number"]: s["visited"] for s in json.loads(storage.get(KEY_STRUCTURES))}
    assert saved == {1: True, 2: True, 3: False}
