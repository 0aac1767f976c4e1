# wecare/services/proximity.py
from dataclasses import dataclass
from math import radians, sin, cos, asin, sqrt
from typing import Iterable, List, Optional

EARTH_RADIUS_KM = 6371.0

@dataclass(frozen=True)
class MatchCandidate:
    donation: dict
    distance_km: float

    @property
    def id(self) -> str:
        return str(self.donation["id"])

def haversine_km(lat1, lng1, lat2, lng2) -> float:
    dlat = radians(lat2 - lat1)
    dlng = radians(lng2 - lng1)
    a = sin(dlat/2)**2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlng/2)**2
    c = 2 * asin(sqrt(a))
    return EARTH_RADIUS_KM * c

def _coord(v) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None

def rank_candidates(lat, lng, donations: Iterable[dict]) -> List[MatchCandidate]:
    """
    Sort donations by great-circle distance from (lat, lng), nearest first.
    Ties break on donation id. Donations without both coordinates are dropped.
    """
    lat = _coord(lat) or 0.0
    lng = _coord(lng) or 0.0
    out = []
    for d in donations:
        d_lat, d_lng = _coord(d.get("latitude")), _coord(d.get("longitude"))
        if d_lat is None or d_lng is None:
            continue
        out.append(MatchCandidate(donation=d, distance_km=haversine_km(lat, lng, d_lat, d_lng)))
    out.sort(key=lambda c: (c.distance_km, c.id))
    return out
