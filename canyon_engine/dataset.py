"""
Dataset Loader - bundled structures and landmark points.

This module provides the Dataset value object (a versioned, validated
snapshot of the canyon's structures and surveyed points) and the
DatasetLoader that reads it from a JSON document and caches it.

Document format:
    {
      "version": "3",
      "structures": [{"number": 1, "title": "Bridge", ...}, ...],
      "map_points": [{"number": 0, "latitude": 35.3, "longitude": -120.6,
                      "pixel": [410, 892], "structure": 1}, ...]
    }
"""

import json
import logging
from collections import Counter
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Tuple

from canyon_engine.errors import DatasetError
from canyon_zone import LandmarkPoint, NEVER_VISITED, Structure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dataset:
    """
    Versioned static content.

    Invariants (checked at construction):
        - version is non-empty
        - structure numbers and point numbers are unique
        - every landmark point references an existing structure
    """

    version: str
    structures: Tuple[Structure, ...]
    points: Tuple[LandmarkPoint, ...]

    def __post_init__(self):
        """Validate alignment between structures and points."""
        if not self.version:
            raise DatasetError("Dataset version cannot be empty")

        duplicates = _duplicates(s.number for s in self.structures)
        if duplicates:
            raise DatasetError(f"Duplicate structure numbers: {duplicates}")

        duplicates = _duplicates(p.number for p in self.points)
        if duplicates:
            raise DatasetError(f"Duplicate map point numbers: {duplicates}")

        known = {s.number for s in self.structures}
        dangling = sorted({p.structure for p in self.points if p.is_landmark and p.structure not in known})
        if dangling:
            raise DatasetError(f"Map points reference unknown structures: {dangling}")

        referenced = {p.structure for p in self.points if p.is_landmark}
        unplaced = sorted(known - referenced)
        if unplaced:
            logger.warning(f"Structures without map points (never visitable): {unplaced}")

    def fresh_structures(self) -> List[Structure]:
        """Structures with default progress."""
        return [
            replace(s.copy(), visited=False, opened=False, liked=False, visit_order=NEVER_VISITED)
            for s in self.structures
        ]

    def fresh_points(self) -> List[LandmarkPoint]:
        """Points with cleared visited flags."""
        return [p.with_visited(False) for p in self.points]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Dataset":
        """
        Build from a parsed document.

        Raises:
            DatasetError: On missing keys or malformed entries
        """
        try:
            version = str(data["version"])
            structures = tuple(Structure.from_dict(s) for s in data["structures"])
            points = tuple(LandmarkPoint.from_dict(p) for p in data["map_points"])
        except KeyError as e:
            raise DatasetError(f"Missing required dataset field: {e}") from e
        except (TypeError, ValueError) as e:
            raise DatasetError(f"Invalid dataset entry: {e}") from e
        return cls(version=version, structures=structures, points=points)


class DatasetLoader:
    """
    JSON dataset loader with in-memory caching.

    Usage:
        loader = DatasetLoader()
        dataset = loader.load(Path("data/dataset.json"))
    """

    def __init__(self):
        self._cache: Dict[Path, Dataset] = {}

    def load(self, path: Path) -> Dataset:
        """
        Load a dataset from disk or cache.

        Raises:
            FileNotFoundError: If the file does not exist
            DatasetError: If the document is not valid
        """
        key = Path(path).resolve()
        if key in self._cache:
            return self._cache[key]

        if not key.exists():
            raise FileNotFoundError(f"Dataset not found: {path}")

        try:
            with open(key, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise DatasetError(f"Invalid JSON in {path}: {e}") from e

        dataset = Dataset.from_dict(data)
        self._cache[key] = dataset
        logger.info(
            f"Loaded dataset v{dataset.version}: "
            f"{len(dataset.structures)} structures, {len(dataset.points)} map points"
        )
        return dataset

    def clear_cache(self) -> None:
        self._cache.clear()


def _duplicates(numbers) -> List[int]:
    return sorted(n for n, count in Counter(numbers).items() if count > 1)
