from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel

from contact_indexer.exceptions.custom import IngestionAlreadyRunningError
from contact_indexer.schemas.responses import IngestionSummary
from contact_indexer.services.ingestion import IngestionService

logger = logging.getLogger(__name__)


class JobStatus(StrEnum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


_FINISHED = (JobStatus.completed, JobStatus.failed)


class Job(BaseModel):
    job_id: str
    status: JobStatus
    created_at: datetime
    finished_at: datetime | None = None
    result: IngestionSummary | None = None
    error: str | None = None


class JobStore:
    def __init__(self, max_jobs: int = 100) -> None:
        self._jobs: dict[str, Job] = {}
        self._max_jobs = max_jobs

    def _evict(self) -> None:
        # Active runs are never evicted, only finished ones, oldest first.
        overflow = len(self._jobs) - self._max_jobs
        if overflow <= 0:
            return
        finished = sorted(
            (j for j in self._jobs.values() if j.status in _FINISHED),
            key=lambda j: j.created_at,
        )
        for job in finished[:overflow]:
            del self._jobs[job.job_id]

    def create_job(self) -> Job:
        job = Job(
            job_id=uuid.uuid4().hex[:12],
            status=JobStatus.pending,
            created_at=datetime.now(timezone.utc),
        )
        self._jobs[job.job_id] = job
        self._evict()
        return job

    def get_job(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def latest_job(self) -> Job | None:
        if not self._jobs:
            return None
        return max(self._jobs.values(), key=lambda j: j.created_at)

    def has_active_job(self) -> Job | None:
        for job in self._jobs.values():
            if job.status not in _FINISHED:
                return job
        return None

    def mark_running(self, job_id: str) -> None:
        if job := self._jobs.get(job_id):
            job.status = JobStatus.running

    def mark_completed(self, job_id: str, result: IngestionSummary | None) -> None:
        if job := self._jobs.get(job_id):
            job.status = JobStatus.completed
            job.result = result
            job.finished_at = datetime.now(timezone.utc)

    def mark_failed(self, job_id: str, error: str) -> None:
        if job := self._jobs.get(job_id):
            job.status = JobStatus.failed
            job.error = error
            job.finished_at = datetime.now(timezone.utc)


async def run_ingestion_job(service: IngestionService, store: JobStore) -> Job | None:
    """Run one tracked ingestion pass; returns None when a run is already active."""
    if store.has_active_job() or service.running:
        logger.info("Ingestion already running; skipping this trigger")
        return None

    job = store.create_job()
    store.mark_running(job.job_id)
    try:
        summary = await service.run()
    except IngestionAlreadyRunningError:
        store.mark_failed(job.job_id, "already running")
    except Exception as exc:
        logger.exception("Ingestion job %s failed", job.job_id)
        store.mark_failed(job.job_id, str(exc))
    else:
        store.mark_completed(job.job_id, summary)
    return job


async def run_periodically(
    service: IngestionService,
    store: JobStore,
    interval_s: float,
    run_on_startup: bool = True,
) -> None:
    """Trigger ingestion on startup (optionally) and then every ``interval_s`` seconds."""
    if not run_on_startup:
        await asyncio.sleep(interval_s)
    while True:
        await run_ingestion_job(service, store)
        await asyncio.sleep(interval_s)
