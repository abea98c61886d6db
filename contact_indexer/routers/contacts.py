import logging
from typing import Literal

from fastapi import APIRouter, Query

from contact_indexer.dependencies import SearchDep
from contact_indexer.exceptions.custom import (
    ContactNotFoundError,
    InvalidQueryError,
    SearchFailedError,
    StoreUnavailableError,
)
from contact_indexer.schemas.responses import ContactResponse, NearPoint, SearchResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Contacts"])

_EXPECTED_ERRORS = (InvalidQueryError, ContactNotFoundError, StoreUnavailableError)


@router.get("/search", response_model=SearchResponse)
async def search(
    service: SearchDep,
    q: str = "",
    limit: int = Query(20, ge=1),
    page: int = Query(1, ge=1),
    sort_by: str = "score",
    order: Literal["asc", "desc"] = "desc",
    near_lat: float | None = Query(None, alias="near[lat]", ge=-90, le=90),
    near_lng: float | None = Query(None, alias="near[lng]", ge=-180, le=180),
    near_max_distance: float | None = Query(None, alias="near[maxDistance]", gt=0),
) -> SearchResponse:
    near = None
    if near_lat is not None and near_lng is not None:
        near = NearPoint(lat=near_lat, lng=near_lng, max_distance=near_max_distance)

    try:
        return await service.search(q, limit=limit, page=page, sort_by=sort_by, order=order, near=near)
    except _EXPECTED_ERRORS:
        raise
    except Exception as exc:
        logger.exception("Fuzzy search failed for %r", q)
        raise SearchFailedError(str(exc) or "Fuzzy search failed") from exc


@router.get("/get_by_id", response_model=ContactResponse)
async def get_by_id(service: SearchDep, id: int = Query(...)) -> ContactResponse:
    try:
        record = await service.get_by_id(id)
    except _EXPECTED_ERRORS:
        raise
    except Exception as exc:
        logger.exception("Lookup failed for contact %s", id)
        raise SearchFailedError(str(exc) or "Contact lookup failed") from exc
    return ContactResponse(message="Contact found!", result=record)
