"""
Nearest Landmark Resolver
=========================

Nearest-neighbor lookup over the fixed set of landmark points.

Design:
- Coordinates packed into numpy arrays once at construction
- O(N) vectorized scan per query (N is a few hundred points)
- Ties resolve to the lowest index in dataset order (argmin semantics)
- Point flags may change; the index stays valid because only the
  coordinates are cached
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from canyon_zone.geometry.distance import haversine_many
from canyon_zone.geometry.shapes import Coordinate
from canyon_zone.models import LandmarkPoint, NON_LANDMARK


@dataclass(frozen=True)
class Resolution:
    """
    Result of a nearest-point query.

    Attributes:
        point: Closest landmark point
        index: Position of the point in dataset order
        distance_m: Distance from the query position in meters
    """

    point: LandmarkPoint
    index: int
    distance_m: float

    @property
    def structure(self) -> int:
        """Structure number (NON_LANDMARK for path points)."""
        return self.point.structure


class NearestLandmarkResolver:
    """
    Resolves positions to the closest landmark point.

    Usage:
        resolver = NearestLandmarkResolver(points)
        hit = resolver.nearest(Coordinate(35.3139, -120.6527))
        if hit and hit.distance_m <= 20:
            ...
    """

    def __init__(self, points: Sequence[LandmarkPoint]):
        """
        Build the index.

        Args:
            points: Landmark points in dataset order
        """
        self._points: List[LandmarkPoint] = list(points)
        self._latitudes = np.array([p.coordinate.latitude for p in self._points], dtype=np.float64)
        self._longitudes = np.array([p.coordinate.longitude for p in self._points], dtype=np.float64)
        self._latitudes.flags.writeable = False
        self._longitudes.flags.writeable = False

        self._by_structure: Dict[int, List[int]] = {}
        for index, point in enumerate(self._points):
            if point.is_landmark:
                self._by_structure.setdefault(point.structure, []).append(index)

    def __len__(self) -> int:
        return len(self._points)

    def __repr__(self) -> str:
        return f"NearestLandmarkResolver(points={len(self._points)}, structures={len(self._by_structure)})"

    @property
    def is_empty(self) -> bool:
        return not self._points

    def update_points(self, points: Sequence[LandmarkPoint]) -> None:
        """
        Refresh point flags without rebuilding the coordinate index.

        Raises:
            ValueError: If the number of points changed
        """
        if len(points) != len(self._points):
            raise ValueError(
                f"Point count changed ({len(self._points)} -> {len(points)}), build a new resolver"
            )
        self._points = list(points)

    def distances(self, point: Coordinate) -> np.ndarray:
        """Distance from `point` to every landmark point, in dataset order."""
        return haversine_many(point, self._latitudes, self._longitudes)

    def nearest(self, point: Coordinate) -> Optional[Resolution]:
        """
        Closest landmark point.

        Args:
            point: Query position

        Returns:
            Resolution, or None when the point set is empty
        """
        if not self._points:
            return None
        distances = self.distances(point)
        index = int(np.argmin(distances))
        return Resolution(point=self._points[index], index=index, distance_m=float(distances[index]))

    def closest_structures(self, point: Coordinate, limit: int = 3) -> List[int]:
        """
        Distinct structure numbers ordered by distance.

        Path points are skipped. Each structure is ranked by its closest
        point.

        Args:
            point: Query position
            limit: Max number of structures to return
        """
        if not self._points or limit <= 0:
            return []
        distances = self.distances(point)
        # Stable sort keeps dataset order among equal distances
        order = np.argsort(distances, kind='stable')

        found: List[int] = []
        for index in order:
            structure = self._points[int(index)].structure
            if structure == NON_LANDMARK or structure in found:
                continue
            found.append(structure)
            if len(found) == limit:
                break
        return found

    def point_for_structure(self, structure: int) -> Optional[LandmarkPoint]:
        """First point (dataset order) belonging to a structure."""
        indices = self._by_structure.get(structure)
        if not indices:
            return None
        return self._points[indices[0]]

    def points_for_structure(self, structure: int) -> List[LandmarkPoint]:
        """All points belonging to a structure."""
        return [self._points[i] for i in self._by_structure.get(structure, [])]

    def distance_to_structure(self, point: Coordinate, structure: int) -> float:
        """
        Distance to the closest point of a structure.

        Returns:
            Meters, or infinity if the structure has no points
        """
        indices = self._by_structure.get(structure)
        if not indices:
            return float('inf')
        distances = haversine_many(point, self._latitudes[indices], self._longitudes[indices])
        return float(distances.min())
