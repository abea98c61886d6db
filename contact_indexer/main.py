import asyncio
import contextlib
import logging
import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from contact_indexer.config import Settings
from contact_indexer.db import Database
from contact_indexer.exceptions.custom import (
    ContactNotFoundError,
    InvalidQueryError,
    JobNotFoundError,
    SearchFailedError,
    StoreUnavailableError,
)
from contact_indexer.exceptions.handlers import (
    contact_not_found_error_handler,
    invalid_query_error_handler,
    job_not_found_error_handler,
    search_failed_error_handler,
    store_unavailable_error_handler,
)
from contact_indexer.jobs import JobStore, run_periodically
from contact_indexer.routers.contacts import router as contacts_router
from contact_indexer.routers.ingestion import router as ingestion_router
from contact_indexer.services.contact_scraper import ContactScraperService
from contact_indexer.services.contact_store import ContactStore
from contact_indexer.services.ingestion import IngestionService
from contact_indexer.services.search import SearchService

logger = logging.getLogger(__name__)


async def _cancel(task: asyncio.Task | None) -> None:
    if task is None:
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    database = Database(settings.database_url, retry_delay_s=settings.db_retry_delay_s)
    state = await database.connect()
    connect_task: asyncio.Task | None = None
    if not database.is_connected:
        logger.warning("Store unavailable at startup (%s); retrying in background", state.error)
        connect_task = asyncio.create_task(database.connect_with_retry())

    store = ContactStore(database)
    job_store = JobStore()

    async with httpx.AsyncClient(timeout=30.0) as client:
        ingestion = IngestionService(
            client,
            ContactScraperService(settings),
            store,
            settings.source_csv_path,
            liveness_timeout_s=settings.liveness_timeout_s,
        )

        app.state.database = database
        app.state.search_service = SearchService(store, settings)
        app.state.ingestion_service = ingestion
        app.state.job_store = job_store

        scheduler_task: asyncio.Task | None = None
        if settings.ingestion_interval_hours > 0:
            scheduler_task = asyncio.create_task(
                run_periodically(
                    ingestion,
                    job_store,
                    interval_s=settings.ingestion_interval_hours * 3600,
                    run_on_startup=settings.ingestion_on_startup,
                )
            )

        try:
            yield
        finally:
            await _cancel(scheduler_task)
            await _cancel(connect_task)
            await database.close()


app = FastAPI(title="Contact Indexer", lifespan=lifespan)

app.add_exception_handler(InvalidQueryError, invalid_query_error_handler)
app.add_exception_handler(ContactNotFoundError, contact_not_found_error_handler)
app.add_exception_handler(SearchFailedError, search_failed_error_handler)
app.add_exception_handler(StoreUnavailableError, store_unavailable_error_handler)
app.add_exception_handler(JobNotFoundError, job_not_found_error_handler)

app.include_router(contacts_router)
app.include_router(ingestion_router)
