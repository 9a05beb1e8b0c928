"""Great-circle distance between service locations and a search origin"""

import math
from typing import Optional

EARTH_RADIUS_KM = 6371


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in kilometres, rounded to 2 dp"""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return round(EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a)), 2)


def service_coordinates(location: Optional[dict]) -> Optional[tuple[float, float]]:
    """(lat, lng) from a service location stored as [lng, lat]"""
    coords = (location or {}).get("coordinates")
    if isinstance(coords, (list, tuple)) and len(coords) == 2:
        return float(coords[1]), float(coords[0])
    return None
