from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

SOCIAL_PLATFORMS = ("facebook", "instagram", "linkedin", "twitter", "tiktok")


class Coords(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class SocialLinks(BaseModel):
    facebook: str = ""
    instagram: str = ""
    linkedin: str = ""
    twitter: str = ""
    tiktok: str = ""


class PageSnapshot(BaseModel):
    """Rendered state of one page, as read by the heuristics."""

    url: str
    html: str = ""
    text: str = ""  # visible body text, line breaks preserved


class PageSignals(BaseModel):
    phones: list[str] = []  # E.164, discovery order
    socials: SocialLinks = SocialLinks()
    address: str | None = None
    coords: Coords | None = None


class ExtractionResult(BaseModel):
    url: str
    phones: list[str] = []
    socials: SocialLinks = SocialLinks()
    address: str | None = None
    coords: Coords | None = None
    success: bool = False
    error: str = ""


class SourceEntry(BaseModel):
    url: str
    legal_name: str = ""
    commercial_name: str = ""
    alt_names: list[str] = []


class ContactRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    company_commercial_name: str = ""
    company_legal_name: str = ""
    company_all_available_names: list[str] = []
    phones: list[str] = []
    socials: SocialLinks = SocialLinks()
    address: str | None = None
    coords: Coords | None = None
    success: bool
    error: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
