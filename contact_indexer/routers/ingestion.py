from fastapi import APIRouter

from contact_indexer.dependencies import JobStoreDep
from contact_indexer.exceptions.custom import JobNotFoundError
from contact_indexer.schemas.responses import JobStatusResponse

router = APIRouter(prefix="/api/v1/ingestion", tags=["Ingestion"])


@router.get("/jobs/latest", response_model=JobStatusResponse)
async def get_latest_job(store: JobStoreDep) -> JobStatusResponse:
    job = store.latest_job()
    if job is None:
        raise JobNotFoundError("latest")
    return JobStatusResponse(**job.model_dump())


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job_status(job_id: str, store: JobStoreDep) -> JobStatusResponse:
    job = store.get_job(job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    return JobStatusResponse(**job.model_dump())
