"""Tests for JobStore and tracked ingestion runs."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from contact_indexer.exceptions.custom import IngestionAlreadyRunningError
from contact_indexer.jobs import JobStatus, JobStore, run_ingestion_job, run_periodically
from contact_indexer.schemas.responses import IngestionSummary


def _service(summary=None, side_effect=None, running=False):
    service = MagicMock()
    service.running = running
    service.run = AsyncMock(return_value=summary, side_effect=side_effect)
    return service


def test_job_lifecycle():
    store = JobStore()
    job = store.create_job()
    assert job.status == JobStatus.pending

    store.mark_running(job.job_id)
    assert store.has_active_job() is job

    store.mark_completed(job.job_id, IngestionSummary(total=2, processed=2))
    assert job.status == JobStatus.completed
    assert job.result.processed == 2
    assert job.finished_at is not None
    assert store.has_active_job() is None


def test_latest_job_is_newest():
    store = JobStore()
    older = store.create_job()
    older.created_at = datetime.now(timezone.utc) - timedelta(hours=1)
    newer = store.create_job()
    assert store.latest_job() is newer


def test_latest_job_empty_store():
    assert JobStore().latest_job() is None


def test_unknown_job_ids_ignored():
    store = JobStore()
    store.mark_running("missing")
    store.mark_failed("missing", "boom")
    assert store.get_job("missing") is None


def test_eviction_drops_oldest_finished_jobs():
    store = JobStore(max_jobs=2)
    first = store.create_job()
    store.mark_failed(first.job_id, "boom")
    second = store.create_job()
    store.mark_running(second.job_id)
    store.create_job()

    assert store.get_job(first.job_id) is None
    assert store.get_job(second.job_id) is second


async def test_run_ingestion_job_completed():
    store = JobStore()
    summary = IngestionSummary(total=3, processed=3)
    job = await run_ingestion_job(_service(summary), store)

    assert job.status == JobStatus.completed
    assert job.result == summary


async def test_run_ingestion_job_failure_recorded():
    store = JobStore()
    job = await run_ingestion_job(_service(side_effect=RuntimeError("csv missing")), store)

    assert job.status == JobStatus.failed
    assert job.error == "csv missing"


async def test_run_ingestion_job_lost_race_marked_failed():
    store = JobStore()
    job = await run_ingestion_job(_service(side_effect=IngestionAlreadyRunningError()), store)
    assert job.status == JobStatus.failed


async def test_overlapping_trigger_skipped():
    store = JobStore()
    active = store.create_job()
    store.mark_running(active.job_id)
    service = _service(IngestionSummary())

    assert await run_ingestion_job(service, store) is None
    service.run.assert_not_awaited()


async def test_running_service_skips_trigger():
    service = _service(IngestionSummary(), running=True)
    assert await run_ingestion_job(service, JobStore()) is None


async def test_run_periodically_triggers_on_startup():
    store = JobStore()
    service = _service(IngestionSummary())
    task = asyncio.create_task(run_periodically(service, store, interval_s=3600))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    service.run.assert_awaited_once()
    assert store.latest_job().status == JobStatus.completed


async def test_run_periodically_waits_when_startup_disabled():
    service = _service(IngestionSummary())
    task = asyncio.create_task(run_periodically(service, JobStore(), interval_s=3600, run_on_startup=False))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    service.run.assert_not_awaited()
