"""Great-circle distance and nearby-risk selection"""

import math
from typing import Iterable, List, Tuple

from riskwatch.domain.exceptions import InvalidCoordinates, InvalidQueryParameter, RadiusTooLarge
from riskwatch.domain.models import NearbyRisk, RiskPoint

EARTH_RADIUS_KM = 6371.0088

# Distances are rounded to the millimetre so equal inputs always order the same way
DISTANCE_PRECISION = 6

KM_PER_DEGREE_LAT = 111.32


def validate_coordinates(lat: float, lng: float) -> None:
    if lat is None or lng is None or math.isnan(lat) or math.isnan(lng):
        raise InvalidCoordinates("lat and lng are required")
    if not -90.0 <= lat <= 90.0:
        raise InvalidCoordinates(f"lat must be within [-90, 90], got {lat}")
    if not -180.0 <= lng <= 180.0:
        raise InvalidCoordinates(f"lng must be within [-180, 180], got {lng}")


def validate_radius(radius_km: float, max_radius_km: float) -> None:
    if radius_km is None or math.isnan(radius_km) or radius_km <= 0:
        raise InvalidQueryParameter("radius_km must be greater than 0")
    if radius_km > max_radius_km:
        raise RadiusTooLarge(f"radius_km must not exceed {max_radius_km:g} km, got {radius_km:g}")


def validate_limit(limit: int, max_limit: int) -> None:
    if limit is None or not 1 <= limit <= max_limit:
        raise InvalidQueryParameter(f"limit must be within [1, {max_limit}]")


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Spherical-earth distance in kilometers, rounded to DISTANCE_PRECISION"""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.asin(min(1.0, math.sqrt(a)))
    return round(EARTH_RADIUS_KM * c, DISTANCE_PRECISION)


def bounding_box(lat: float, lng: float, radius_km: float) -> Tuple[float, float, float, float]:
    """
    Coarse (min_lat, max_lat, min_lng, max_lng) box containing the search circle.

    Used only as a SQL prefilter; the haversine filter is authoritative. Near the
    poles or when the box crosses the antimeridian the longitude span is widened
    to the full range.
    """
    # Padded so rounding at the box edge never drops a point inside the circle
    d_lat = radius_km / KM_PER_DEGREE_LAT * 1.01
    min_lat, max_lat = max(-90.0, lat - d_lat), min(90.0, lat + d_lat)

    cos_lat = math.cos(math.radians(max(abs(min_lat), abs(max_lat))))
    if cos_lat < 1e-6:
        return min_lat, max_lat, -180.0, 180.0

    d_lng = radius_km / (KM_PER_DEGREE_LAT * cos_lat) * 1.01
    min_lng, max_lng = lng - d_lng, lng + d_lng
    if min_lng < -180.0 or max_lng > 180.0:
        return min_lat, max_lat, -180.0, 180.0
    return min_lat, max_lat, min_lng, max_lng


def select_nearby(
    candidates: Iterable[RiskPoint],
    lat: float,
    lng: float,
    radius_km: float,
    limit: int,
) -> List[NearbyRisk]:
    """
    Keep candidates within radius_km of (lat, lng), nearest first.

    Ties on distance are broken by risk id so the ordering is stable across calls.
    """
    within = []
    for risk in candidates:
        distance = haversine_km(lat, lng, risk.latitude, risk.longitude)
        if distance <= radius_km:
            within.append(NearbyRisk(risk=risk, distance_km=distance))

    within.sort(key=lambda item: (item.distance_km, item.risk.id))
    return within[:limit]
