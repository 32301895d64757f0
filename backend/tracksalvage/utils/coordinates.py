"""
Geodesy helpers for decoded trackpoints.
"""

from typing import Union

import numpy as np
from numpy.typing import NDArray


EARTH_RADIUS_M = 6371000  # Earth's mean radius in meters

ArrayOrFloat = Union[float, NDArray[np.float64]]


def haversine_distance(
    lat1: ArrayOrFloat,
    lon1: ArrayOrFloat,
    lat2: ArrayOrFloat,
    lon2: ArrayOrFloat,
) -> ArrayOrFloat:
    """
    Calculate great-circle distance between two points.

    Works element-wise on arrays, so consecutive-point distances of a track
    can be computed in one call.

    Args:
        lat1, lon1: First point coordinates in degrees
        lat2, lon2: Second point coordinates in degrees

    Returns:
        Distance in meters
    """
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    dlat = np.radians(np.subtract(lat2, lat1))
    dlon = np.radians(np.subtract(lon2, lon1))

    a = np.sin(dlat/2)**2 + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(dlon/2)**2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1-a))

    return EARTH_RADIUS_M * c


def bearing_degrees(
    lat1: ArrayOrFloat,
    lon1: ArrayOrFloat,
    lat2: ArrayOrFloat,
    lon2: ArrayOrFloat,
) -> ArrayOrFloat:
    """
    Initial great-circle bearing from point 1 to point 2.

    Returns:
        Bearing in degrees (0=North, 90=East)
    """
    lat1_rad = np.radians(lat1)
    lat2_rad = np.radians(lat2)
    dlon = np.radians(np.subtract(lon2, lon1))

    y = np.sin(dlon) * np.cos(lat2_rad)
    x = np.cos(lat1_rad) * np.sin(lat2_rad) - np.sin(lat1_rad) * np.cos(lat2_rad) * np.cos(dlon)

    return np.degrees(np.arctan2(y, x)) % 360
