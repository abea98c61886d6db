import math

from contact_indexer.schemas.contact import Coords

EARTH_RADIUS_KM = 6371.0


def haversine_m(a: Coords, b: Coords) -> float:
    """Great-circle distance between two points, in meters."""
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c * 1000


def parse_coords(lat, lng) -> Coords | None:
    """Build Coords from loosely-typed values; None when unparseable or out of range."""
    try:
        lat_f = float(lat)
        lng_f = float(lng)
    except (TypeError, ValueError):
        return None
    if math.isnan(lat_f) or math.isnan(lng_f):
        return None
    if not (-90 <= lat_f <= 90 and -180 <= lng_f <= 180):
        return None
    return Coords(lat=lat_f, lng=lng_f)
