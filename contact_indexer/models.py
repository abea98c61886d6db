from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class ContactRow(Base):
    """One row per distinct website, keyed by canonical URL."""

    __tablename__ = "contacts"
    # AUTOINCREMENT keeps SQLite from reusing ids of deleted rows.
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(String(2048), unique=True, nullable=False, index=True)

    company_commercial_name: Mapped[str] = mapped_column(String(512), default="")
    company_legal_name: Mapped[str] = mapped_column(String(512), default="")
    company_all_available_names: Mapped[list] = mapped_column(JSON, default=list)

    phones: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    facebook: Mapped[str] = mapped_column(String(2048), default="")
    instagram: Mapped[str] = mapped_column(String(2048), default="")
    linkedin: Mapped[str] = mapped_column(String(2048), default="")
    twitter: Mapped[str] = mapped_column(String(2048), default="")
    tiktok: Mapped[str] = mapped_column(String(2048), default="")

    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)

    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    error: Mapped[str] = mapped_column(Text, default="")

    # Space-delimited lowercase word tokens of the searchable text fields.
    search_tokens: Mapped[str] = mapped_column(Text, default="", index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    def __repr__(self) -> str:
        return f"<ContactRow(id={self.id}, url={self.url})>"
