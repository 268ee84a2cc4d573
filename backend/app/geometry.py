from __future__ import annotations

import math

EARTH_RADIUS_MI = 3963.0


def distance(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Great-circle (haversine) distance in statute miles."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = phi2 - phi1
    dlambda = math.radians(lon2 - lon1)
    a = (
        math.sin(dphi / 2.0) ** 2
        + (math.cos(phi1) * math.cos(phi2) * (math.sin(dlambda / 2.0) ** 2))
    )
    return 2.0 * EARTH_RADIUS_MI * math.asin(min(1.0, math.sqrt(max(0.0, a))))


def bearing(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Initial great-circle bearing in degrees, (-180, 180], 0 = north, clockwise positive."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dlambda = math.radians(lon2 - lon1)
    y = math.sin(dlambda) * math.cos(phi2)
    x = (math.cos(phi1) * math.sin(phi2)) - (math.sin(phi1) * math.cos(phi2) * math.cos(dlambda))
    deg = math.degrees(math.atan2(y, x))
    # atan2 can return exactly -180.0
    return 180.0 if deg == -180.0 else deg


def normalize_angle(deg: float) -> float:
    folded = math.fmod(deg, 360.0)
    if folded > 180.0:
        folded -= 360.0
    elif folded < -180.0:
        folded += 360.0
    return folded
