from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from contact_indexer.schemas.contact import ContactRecord


class NearPoint(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    max_distance: float | None = None  # meters


class ScoredContact(ContactRecord):
    model_config = ConfigDict(populate_by_name=True)

    score: str = Field(alias="_score")  # relevance, 3 decimals


class SearchResponse(BaseModel):
    status: int = 200
    total: int
    page: int
    pages: int
    results: list[ScoredContact] = []


class ContactResponse(BaseModel):
    status: int = 200
    message: str
    result: ContactRecord


class IngestionSummary(BaseModel):
    total: int = 0
    processed: int = 0
    skipped_offline: int = 0
    failed: int = 0  # extraction completed with success=False
    store_errors: int = 0


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    created_at: datetime
    finished_at: datetime | None = None
    result: IngestionSummary | None = None
    error: str | None = None
