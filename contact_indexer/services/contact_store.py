import logging
import re

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.dialects import postgresql, sqlite

from contact_indexer.db import Database
from contact_indexer.models import ContactRow, utc_now
from contact_indexer.schemas.contact import (
    SOCIAL_PLATFORMS,
    ContactRecord,
    Coords,
    ExtractionResult,
    SocialLinks,
    SourceEntry,
)

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+")

TEXT_FIELDS = (
    "company_commercial_name",
    "company_legal_name",
    "url",
    "address",
    *SOCIAL_PLATFORMS,
)


def tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def build_search_tokens(values: list[str | None]) -> str:
    """Padded, space-delimited token string so ``% token %`` matches whole words."""
    tokens: list[str] = []
    for value in values:
        if value:
            tokens.extend(tokenize(value))
    unique = dict.fromkeys(tokens)
    return f" {' '.join(unique)} " if unique else ""


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def to_record(row: ContactRow) -> ContactRecord:
    coords = Coords(lat=row.lat, lng=row.lng) if row.lat is not None and row.lng is not None else None
    return ContactRecord(
        id=row.id,
        url=row.url,
        company_commercial_name=row.company_commercial_name or "",
        company_legal_name=row.company_legal_name or "",
        company_all_available_names=list(row.company_all_available_names or []),
        phones=list(row.phones or []),
        socials=SocialLinks(**{p: getattr(row, p) or "" for p in SOCIAL_PLATFORMS}),
        address=row.address,
        coords=coords,
        success=row.success,
        error=row.error or "",
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class ContactStore:
    def __init__(self, database: Database):
        self._db = database

    def _insert(self):
        if self._db.dialect == "postgresql":
            return postgresql.insert
        return sqlite.insert

    async def upsert(self, entry: SourceEntry, result: ExtractionResult) -> ContactRecord:
        """Insert or overwrite the record keyed by ``entry.url``; ``id`` is preserved."""
        socials = result.socials.model_dump()
        values = {
            "company_commercial_name": entry.commercial_name,
            "company_legal_name": entry.legal_name,
            "company_all_available_names": list(entry.alt_names),
            "phones": list(dict.fromkeys(result.phones)),
            **socials,
            "address": result.address,
            "lat": result.coords.lat if result.coords else None,
            "lng": result.coords.lng if result.coords else None,
            "success": result.success,
            "error": result.error if not result.success else "",
            "search_tokens": build_search_tokens(
                [entry.commercial_name, entry.legal_name, entry.url, result.address, *socials.values()]
            ),
            "updated_at": utc_now(),
        }

        insert = self._insert()
        stmt = insert(ContactRow).values(url=entry.url, created_at=utc_now(), **values)
        stmt = stmt.on_conflict_do_update(index_elements=["url"], set_=values)

        async with self._db.session() as session:
            await session.execute(stmt)
            await session.commit()
            row = await session.scalar(select(ContactRow).where(ContactRow.url == entry.url))

        logger.debug("Upserted contact %s (id=%s)", entry.url, row.id)
        return to_record(row)

    async def get_by_id(self, contact_id: int) -> ContactRecord | None:
        async with self._db.session() as session:
            row = await session.scalar(select(ContactRow).where(ContactRow.id == contact_id))
        return to_record(row) if row else None

    async def get_by_url(self, url: str) -> ContactRecord | None:
        async with self._db.session() as session:
            row = await session.scalar(select(ContactRow).where(ContactRow.url == url))
        return to_record(row) if row else None

    async def text_search(self, query: str, limit: int = 200) -> list[ContactRecord]:
        """Rows sharing at least one whole word with ``query``."""
        terms = list(dict.fromkeys(tokenize(query)))
        if not terms:
            return []
        conditions = [
            ContactRow.search_tokens.like(f"% {_escape_like(term)} %", escape="\\") for term in terms
        ]
        stmt = select(ContactRow).where(or_(*conditions)).order_by(ContactRow.id).limit(limit)
        async with self._db.session() as session:
            rows = (await session.scalars(stmt)).all()
        return [to_record(row) for row in rows]

    async def substring_search(self, query: str, limit: int = 200) -> list[ContactRecord]:
        """Case-insensitive literal substring match over text fields and phones."""
        pattern = f"%{_escape_like(query.strip().lower())}%"
        columns = [getattr(ContactRow, name) for name in TEXT_FIELDS]
        conditions = [func.lower(col).like(pattern, escape="\\") for col in columns]
        conditions.append(func.lower(cast(ContactRow.phones, String)).like(pattern, escape="\\"))
        stmt = select(ContactRow).where(or_(*conditions)).order_by(ContactRow.id).limit(limit)
        async with self._db.session() as session:
            rows = (await session.scalars(stmt)).all()
        return [to_record(row) for row in rows]
