"""Nearby-risk query service"""

from typing import List, Optional

from sqlalchemy.orm import Session

from riskwatch.config import settings
from riskwatch.domain.geo import (
    bounding_box,
    select_nearby,
    validate_coordinates,
    validate_limit,
    validate_radius,
)
from riskwatch.domain.models import NearbyRisk
from riskwatch.infrastructure.database.repositories import RiskRepository
from riskwatch.infrastructure.observability.metrics import nearby_result_histogram


class NearbyRiskService:
    """Distance-bounded, nearest-first retrieval of a tenant's risks"""

    def __init__(self, db: Session):
        self.risks = RiskRepository(db)

    def find_nearby(
        self,
        tenant_id: str,
        lat: float,
        lng: float,
        radius_km: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[NearbyRisk]:
        """
        Risks within radius_km of (lat, lng), sorted by increasing distance.

        Raises:
            RadiusTooLarge: radius_km above the configured ceiling
            InvalidCoordinates: lat/lng out of range
            InvalidQueryParameter: radius_km <= 0 or limit out of range
        """
        if radius_km is None:
            radius_km = settings.nearby_default_radius_km
        if limit is None:
            limit = settings.nearby_default_limit

        # radius first: an oversized radius is reported as such whatever the other parameters
        validate_radius(radius_km, settings.nearby_max_radius_km)
        validate_coordinates(lat, lng)
        validate_limit(limit, settings.nearby_max_limit)

        candidates = self.risks.find_in_bounding_box(tenant_id, *bounding_box(lat, lng, radius_km))
        results = select_nearby(candidates, lat, lng, radius_km, limit)

        nearby_result_histogram.observe(len(results))
        return results
