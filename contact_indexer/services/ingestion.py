import asyncio
import csv
import logging
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

import httpx
from sqlalchemy.exc import SQLAlchemyError

from contact_indexer.exceptions.custom import IngestionAlreadyRunningError, StoreUnavailableError
from contact_indexer.schemas.contact import SourceEntry
from contact_indexer.schemas.responses import IngestionSummary
from contact_indexer.services.contact_scraper import ContactScraperService
from contact_indexer.services.contact_store import ContactStore

logger = logging.getLogger(__name__)

_USER_AGENT = "ContactIndexer/1.0 (+liveness-probe)"


def canonicalize_url(raw: str) -> str:
    """Add a missing scheme, lowercase scheme/host, root path as "/", drop the fragment."""
    value = raw.strip()
    if "://" not in value:
        value = f"https://{value}"
    parts = urlsplit(value)
    return urlunsplit((
        parts.scheme.lower(),
        parts.netloc.lower(),
        parts.path or "/",
        parts.query,
        "",
    ))


def parse_source_row(row: list[str]) -> SourceEntry | None:
    """(domain_or_url, legal_name, commercial_name, alt|names); None for non-domain rows."""
    if not row or "." not in row[0]:
        return None
    fields = [c.strip() for c in row] + [""] * 3
    alt_names = [n.strip() for n in fields[3].split("|") if n.strip()]
    return SourceEntry(
        url=canonicalize_url(fields[0]),
        legal_name=fields[1],
        commercial_name=fields[2],
        alt_names=alt_names,
    )


def load_source_entries(path: str | Path) -> list[SourceEntry]:
    entries: list[SourceEntry] = []
    with open(path, newline="", encoding="utf-8") as fh:
        for row in csv.reader(fh):
            entry = parse_source_row(row)
            if entry is not None:
                entries.append(entry)
    return entries


class IngestionService:
    def __init__(
        self,
        client: httpx.AsyncClient,
        scraper: ContactScraperService,
        store: ContactStore,
        source_path: str | Path,
        liveness_timeout_s: float = 10.0,
    ):
        self._client = client
        self._scraper = scraper
        self._store = store
        self._source_path = source_path
        self._liveness_timeout_s = liveness_timeout_s
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def is_online(self, url: str) -> bool:
        """HEAD probe; only a final 200 counts as online."""
        try:
            resp = await self._client.head(
                url,
                follow_redirects=True,
                timeout=self._liveness_timeout_s,
                headers={"User-Agent": _USER_AGENT},
            )
        except httpx.HTTPError as exc:
            logger.info("Liveness probe failed for %s: %s", url, exc)
            return False
        return resp.status_code == 200

    async def run(self) -> IngestionSummary:
        """Process the source list sequentially, one browser session at a time."""
        if self._lock.locked():
            raise IngestionAlreadyRunningError()
        async with self._lock:
            logger.info("Contact ingestion starting")
            entries = await asyncio.to_thread(load_source_entries, self._source_path)
            summary = IngestionSummary(total=len(entries))
            for entry in entries:
                await self._ingest_entry(entry, summary)
            logger.info(
                "Contact ingestion finished: %d processed, %d offline, %d failed, %d store errors",
                summary.processed, summary.skipped_offline, summary.failed, summary.store_errors,
            )
            return summary

    async def _ingest_entry(self, entry: SourceEntry, summary: IngestionSummary) -> None:
        if not await self.is_online(entry.url):
            logger.info("Skipping offline site %s", entry.url)
            summary.skipped_offline += 1
            return

        result = await self._scraper.extract(entry.url)
        if not result.success:
            summary.failed += 1

        try:
            record = await self._store.upsert(entry, result)
        except (SQLAlchemyError, StoreUnavailableError):
            logger.exception("Could not store contact for %s", entry.url)
            summary.store_errors += 1
            return

        summary.processed += 1
        logger.info(
            "Stored contact %s (id=%d, phones=%d, address=%s, coords=%s)",
            record.url, record.id, len(record.phones), bool(record.address), record.coords is not None,
        )
