import logging
import math
from dataclasses import dataclass
from typing import Any

from rapidfuzz import fuzz, utils
from sqlalchemy.exc import SQLAlchemyError

from contact_indexer.config import Settings
from contact_indexer.exceptions.custom import ContactNotFoundError, InvalidQueryError
from contact_indexer.mappers.geo import haversine_m
from contact_indexer.schemas.contact import ContactRecord, Coords
from contact_indexer.schemas.responses import NearPoint, ScoredContact, SearchResponse
from contact_indexer.services.contact_store import ContactStore

logger = logging.getLogger(__name__)

SCORE_SORT = "score"
ID_MATCH_SCORE = 0.0  # exact match on the 0..1 distance scale
MAX_ID = 2**63 - 1  # signed 64-bit integer key


@dataclass
class Scored:
    record: ContactRecord
    score: float  # 0 = exact match, 1 = no match


def _fuzzy_fields(record: ContactRecord) -> list[str]:
    fields = [
        record.company_commercial_name,
        record.company_legal_name,
        record.url,
        record.address or "",
        *record.phones,
        *record.socials.model_dump().values(),
    ]
    return [f for f in fields if f]


def fuzzy_distance(query: str, record: ContactRecord) -> float:
    """Best field distance between ``query`` and the record's searchable fields."""
    best = 0.0
    for value in _fuzzy_fields(record):
        ratio = fuzz.partial_ratio(query, value, processor=utils.default_process)
        if ratio > best:
            best = ratio
            if best == 100:
                break
    return 1 - best / 100


def within_distance(record: ContactRecord, near: NearPoint, default_max_m: float) -> bool:
    if record.coords is None:
        return False
    max_distance = near.max_distance if near.max_distance is not None else default_max_m
    return haversine_m(Coords(lat=near.lat, lng=near.lng), record.coords) <= max_distance


def _sort_value(record: ContactRecord, field: str) -> Any:
    value = record.model_dump().get(field)
    if isinstance(value, (dict, list)):
        return str(value)
    return value


def sort_scored(items: list[Scored], sort_by: str, order: str) -> list[Scored]:
    """Stable sort in either direction; ``score`` sorts by similarity distance."""
    reverse = order == "desc"
    if sort_by == SCORE_SORT:
        return sorted(items, key=lambda s: s.score, reverse=reverse)

    present = [s for s in items if _sort_value(s.record, sort_by) is not None]
    missing = [s for s in items if _sort_value(s.record, sort_by) is None]
    try:
        ordered = sorted(present, key=lambda s: _sort_value(s.record, sort_by), reverse=reverse)
    except TypeError:
        logger.warning("Field %s is not sortable; keeping relevance order", sort_by)
        return items
    return ordered + missing


def _scored_contact(item: Scored) -> ScoredContact:
    return ScoredContact(**item.record.model_dump(), score=f"{1 - item.score:.3f}")


class SearchService:
    def __init__(self, store: ContactStore, settings: Settings | None = None):
        settings = settings or Settings()
        self._store = store
        self._candidate_limit = settings.search_candidate_limit
        self._threshold = settings.fuzzy_threshold
        self._default_max_distance_m = settings.default_max_distance_m

    async def search(
        self,
        q: str,
        limit: int = 20,
        page: int = 1,
        sort_by: str = SCORE_SORT,
        order: str = "desc",
        near: NearPoint | None = None,
    ) -> SearchResponse:
        if not q or not q.strip():
            raise InvalidQueryError("Query parameter 'q' is required")
        query = q.strip()

        candidates = await self._text_candidates(query)
        if not candidates:
            by_id = await self._id_candidate(query)
            if by_id is not None:
                return SearchResponse(
                    total=1,
                    page=page,
                    pages=1,
                    results=[_scored_contact(Scored(by_id, ID_MATCH_SCORE))],
                )
            candidates = await self._store.substring_search(query, self._candidate_limit)

        if near is not None:
            candidates = [
                c for c in candidates if within_distance(c, near, self._default_max_distance_m)
            ]

        if not candidates:
            return SearchResponse(total=0, page=page, pages=0, results=[])

        ranked = [Scored(c, fuzzy_distance(query, c)) for c in candidates]
        matched = [s for s in ranked if s.score <= self._threshold]
        logger.debug("Query %r: %d candidates, %d above threshold", query, len(ranked), len(matched))

        ordered = sort_scored(matched, sort_by, order)
        skip = (page - 1) * limit
        return SearchResponse(
            total=len(matched),
            page=page,
            pages=math.ceil(len(matched) / limit),
            results=[_scored_contact(s) for s in ordered[skip : skip + limit]],
        )

    async def get_by_id(self, contact_id: int) -> ContactRecord:
        record = await self._store.get_by_id(contact_id)
        if record is None:
            raise ContactNotFoundError(contact_id)
        return record

    async def _text_candidates(self, query: str) -> list[ContactRecord]:
        try:
            return await self._store.text_search(query, self._candidate_limit)
        except SQLAlchemyError:
            logger.exception("Text search failed for %r; falling back", query)
            return []

    async def _id_candidate(self, query: str) -> ContactRecord | None:
        if not (query.isascii() and query.isdigit()):
            return None
        contact_id = int(query)
        if not 0 < contact_id <= MAX_ID:
            return None
        return await self._store.get_by_id(contact_id)
