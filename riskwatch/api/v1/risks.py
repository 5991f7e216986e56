"""GET /v1/risks/nearby - Distance-sorted risks around a point"""

import hashlib
import json
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from riskwatch.api.v1.schemas import NearbyRiskItem
from riskwatch.api.dependencies import get_request_id, get_tenant_id
from riskwatch.config import settings
from riskwatch.infrastructure.database.session import get_db
from riskwatch.services.risks import NearbyRiskService
from riskwatch.domain.exceptions import InvalidCoordinates, InvalidQueryParameter, RadiusTooLarge
from riskwatch.infrastructure.observability.logging import log_nearby_query

router = APIRouter()


@router.get("/risks/nearby", response_model=List[NearbyRiskItem])
def find_nearby_risks(
    request: Request,
    lat: float = Query(..., description="Latitude in decimal degrees"),
    lng: float = Query(..., description="Longitude in decimal degrees"),
    radius_km: Optional[float] = Query(None, description="Search radius in kilometers"),
    limit: Optional[int] = Query(None, description="Maximum number of risks returned"),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """
    Risks of the caller's tenant within radius_km, nearest first.

    The body is tagged with an ETag; a matching If-None-Match gets 304 so map
    clients refreshing on a timer skip unchanged results.
    """
    start_time = time.time()
    request_id = get_request_id(request)
    if radius_km is None:
        radius_km = settings.nearby_default_radius_km
    if limit is None:
        limit = settings.nearby_default_limit

    try:
        results = NearbyRiskService(db).find_nearby(tenant_id, lat, lng, radius_km, limit)
    except (RadiusTooLarge, InvalidCoordinates, InvalidQueryParameter) as e:
        raise HTTPException(status_code=400, detail=str(e))

    items = [
        NearbyRiskItem(
            id=r.risk.id,
            title=r.risk.title,
            description=r.risk.description,
            severity=r.risk.severity,
            category=r.risk.category,
            latitude=r.risk.latitude,
            longitude=r.risk.longitude,
            created_at=r.risk.created_at,
            distance_km=r.distance_km,
        )
        for r in results
    ]
    content = jsonable_encoder(items, by_alias=True)

    duration_ms = (time.time() - start_time) * 1000
    log_nearby_query(request_id, tenant_id, radius_km, limit, len(items), duration_ms)

    etag = compute_etag(content)
    headers = {"ETag": etag, "Cache-Control": "private, max-age=60"}
    if request.headers.get("if-none-match") == etag:
        return Response(status_code=304, headers=headers)

    return JSONResponse(content=content, headers=headers)


def compute_etag(content) -> str:
    """Quoted MD5 of the JSON body"""
    payload = json.dumps(content, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return '"' + hashlib.md5(payload.encode("utf-8")).hexdigest() + '"'
