"""
Geodesy helpers on WGS84 longitude/latitude coordinates.

Distances use a spherical Earth (haversine). Midpoints and centroids are plain
component-wise means, which is accurate enough over the few kilometres that
separate a session from a circuit's finish line.
"""

import numpy as np
from numpy.typing import NDArray

from laptrace.config import EARTH_RADIUS_METERS


def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Calculate great-circle distance between two points.

    Accepts scalars or numpy arrays; NaN inputs propagate to the result.

    Args:
        lat1, lon1: First point coordinates in degrees
        lat2, lon2: Second point coordinates in degrees

    Returns:
        Distance in meters
    """
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    dlat = np.radians(lat2 - lat1)
    dlon = np.radians(lon2 - lon1)

    a = np.sin(dlat / 2) ** 2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def midpoint(start: tuple[float, float], end: tuple[float, float]) -> tuple[float, float]:
    """Component-wise mean of two (lon, lat) points."""
    return ((start[0] + end[0]) / 2, (start[1] + end[1]) / 2)


def centroid(coordinates: NDArray[np.float64]) -> tuple[float, float]:
    """
    Mean (lon, lat) of an N x 2+ coordinate array.

    An empty array yields (0.0, 0.0).
    """
    if len(coordinates) == 0:
        return (0.0, 0.0)
    return (float(np.mean(coordinates[:, 0])), float(np.mean(coordinates[:, 1])))
