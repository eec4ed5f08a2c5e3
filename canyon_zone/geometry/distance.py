"""
Distance Module
===============

Great-circle distance and containment helpers.

Design:
- Pure functions (no state)
- Haversine on a spherical earth (mean radius 6 371 km)
- Vectorized variant (numpy) for one-to-many queries
"""

import math

import numpy as np

from canyon_zone.geometry.shapes import Coordinate, Region

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    """
    Great-circle distance between two points.

    Args:
        a: First position
        b: Second position

    Returns:
        Distance in meters (symmetric, 0.0 for identical points)
    """
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    # Rounding can push h a hair past 1.0 for antipodal points
    h = min(1.0, h)
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def haversine_many(
    point: Coordinate,
    latitudes: np.ndarray,
    longitudes: np.ndarray
) -> np.ndarray:
    """
    Distances from one point to many.

    Args:
        point: Origin
        latitudes: (N,) array of latitudes in degrees
        longitudes: (N,) array of longitudes in degrees

    Returns:
        (N,) float64 array of distances in meters
    """
    phi1 = np.radians(point.latitude)
    phi2 = np.radians(latitudes)
    d_phi = np.radians(latitudes - point.latitude)
    d_lambda = np.radians(longitudes - point.longitude)

    h = np.sin(d_phi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(d_lambda / 2) ** 2
    h = np.clip(h, 0.0, 1.0)
    return 2 * EARTH_RADIUS_M * np.arctan2(np.sqrt(h), np.sqrt(1 - h))


def contains(region: Region, point: Coordinate) -> bool:
    """Inclusive rectangle test (see Region.contains_point)."""
    return region.contains_point(point)
