"""Great-circle distance and geofence checks.

Pure functions; callers validate coordinate ranges before calling.
"""
from __future__ import annotations

import math

EARTH_RADIUS_METERS = 6_371_000


def distance_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> int:
    """Haversine distance between two points, rounded to the nearest meter."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    # halves round up
    return int(math.floor(EARTH_RADIUS_METERS * c + 0.5))


def verify_within_radius(lat1: float, lng1: float, lat2: float, lng2: float, radius_meters: float = 100) -> dict:
    """Return ``{"verified": distance <= radius, "distance": distance}``."""
    distance = distance_meters(lat1, lng1, lat2, lng2)
    return {"verified": distance <= radius_meters, "distance": distance}


def eta_minutes(distance: float, speed_kmh: float = 40) -> int:
    """Minutes to cover ``distance`` meters at ``speed_kmh``."""
    return int(math.floor((distance / 1000) / speed_kmh * 60 + 0.5))
