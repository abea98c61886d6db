import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from .custom import (
    ContactNotFoundError,
    InvalidQueryError,
    JobNotFoundError,
    SearchFailedError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)


async def invalid_query_error_handler(_request: Request, exc: InvalidQueryError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"status": 400, "message": exc.message},
    )


async def contact_not_found_error_handler(_request: Request, exc: ContactNotFoundError) -> JSONResponse:
    logger.info("Contact %s not found", exc.contact_id)
    return JSONResponse(
        status_code=404,
        content={"status": 404, "message": exc.message},
    )


async def search_failed_error_handler(_request: Request, exc: SearchFailedError) -> JSONResponse:
    logger.error("Search failed: %s", exc.message)
    return JSONResponse(
        status_code=500,
        content={"status": 500, "message": exc.message},
    )


async def store_unavailable_error_handler(_request: Request, exc: StoreUnavailableError) -> JSONResponse:
    logger.warning("Store unavailable: %s", exc.message)
    headers = {"Retry-After": str(int(exc.retry_after))} if exc.retry_after else None
    return JSONResponse(
        status_code=503,
        content={"status": 503, "message": exc.message},
        headers=headers,
    )


async def job_not_found_error_handler(_request: Request, exc: JobNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"status": 404, "message": f"Job {exc.job_id} not found"},
    )
