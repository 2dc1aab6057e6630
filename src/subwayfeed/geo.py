"""
Great-circle bearing and compass helpers.
"""
import math

from .models import Direction

CANONICAL_BEARINGS = {
    Direction.N: 0.0,
    Direction.E: 90.0,
    Direction.S: 180.0,
    Direction.W: 270.0,
    Direction.UNK: 0.0,
}


def normalize_bearing(degrees: float) -> float:
    """Wrap an angle into [0, 360)."""
    wrapped = degrees % 360.0
    # -1e-15 % 360 rounds to 360.0
    return 0.0 if wrapped >= 360.0 else wrapped


def initial_bearing(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Return the initial compass bearing from point 1 to point 2 in [0, 360).
    Arguments in degrees.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlng = math.radians(lng2 - lng1)
    y = math.sin(dlng) * math.cos(lat2_rad)
    x = math.cos(lat1_rad) * math.sin(lat2_rad) - math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(dlng)
    return normalize_bearing(math.degrees(math.atan2(y, x)))


def cardinal_from_bearing(bearing: float) -> Direction:
    """Bucket a bearing into four 90-degree sectors centred on N, E, S, W."""
    bearing = normalize_bearing(bearing)
    if bearing >= 315 or bearing < 45:
        return Direction.N
    if bearing < 135:
        return Direction.E
    if bearing < 225:
        return Direction.S
    return Direction.W


def canonical_bearing(direction: Direction) -> float:
    """Bearing implied by a coarse direction. UNK maps to 0."""
    return CANONICAL_BEARINGS[direction]
