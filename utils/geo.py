# utils/geo.py
from __future__ import annotations
import math
from decimal import Decimal, InvalidOperation

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two lat/lng points, in kilometres."""
    p1, p2 = math.radians(lat1), math.radians(lat2)
    dlat = p2 - p1
    dlon = math.radians(lon2 - lon1)
    a = math.sin(dlat / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dlon / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return haversine_km(lat1, lon1, lat2, lon2) * 1000.0


def within_radius(lat: float, lon: float, center_lat: float, center_lon: float, radius_m: float) -> bool:
    return haversine_m(lat, lon, center_lat, center_lon) <= radius_m


def find_matching_geofence(lat: float, lon: float, geofences, default_radius_m: int = 50):
    """First geofence (in the given order) whose circle contains the point, else None."""
    for g in geofences:
        radius = g.radius_meters or default_radius_m
        if within_radius(lat, lon, float(g.latitude), float(g.longitude), radius):
            return g
    return None


def to_decimal_coord(value, *, limit: int):
    """
    Coerce a latitude (limit=90) / longitude (limit=180) into a Decimal.
    None/"" → None. Raises ValueError when not numeric or out of range.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValueError("not a coordinate")
    try:
        d = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError("not a coordinate")
    if not d.is_finite() or abs(d) > limit:
        raise ValueError("coordinate out of range")
    return d


def as_float(value):
    return float(value) if value is not None else None
