"""
Canyon Engine - visit tracking service.

This package wires the geometry, analytics and control layers into one
engine and owns everything that touches the outside world at startup:
configuration, the bundled dataset and persisted progress.

Components:
- EngineConfig: YAML configuration (frozen dataclasses)
- Dataset / DatasetLoader: bundled structures and map points
- KeyValueStorage, FileStorage, MemoryStorage: byte storage backends
- DataStore: versioned persistence and migration
- VisitTrackingEngine: per-fix pipeline, subscriptions, location logs
"""

from canyon_engine.config import (
    EngineConfig,
    RegionConfig,
    IntervalConfig,
    StorageConfig,
    MQTTConfig,
)
from canyon_engine.dataset import Dataset, DatasetLoader
from canyon_engine.errors import (
    CanyonError,
    ConfigError,
    DatasetError,
    StorageError,
    PersistenceError,
    VersionMismatchError,
    PermissionDeniedError,
    NoFixError,
    EmptyLandmarkSetError,
)
from canyon_engine.storage import KeyValueStorage, FileStorage, MemoryStorage
from canyon_engine.store import DataStore, LoadedState
from canyon_engine.service import VisitTrackingEngine, EngineSnapshot, TOPICS

__all__ = [
    "EngineConfig",
    "RegionConfig",
    "IntervalConfig",
    "StorageConfig",
    "MQTTConfig",
    "Dataset",
    "DatasetLoader",
    "CanyonError",
    "ConfigError",
    "DatasetError",
    "StorageError",
    "PersistenceError",
    "VersionMismatchError",
    "PermissionDeniedError",
    "NoFixError",
    "EmptyLandmarkSetError",
    "KeyValueStorage",
    "FileStorage",
    "MemoryStorage",
    "DataStore",
    "LoadedState",
    "VisitTrackingEngine",
    "EngineSnapshot",
    "TOPICS",
]
