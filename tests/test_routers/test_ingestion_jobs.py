from contact_indexer.main import app
from contact_indexer.schemas.responses import IngestionSummary


async def test_latest_job_absent(client):
    resp = await client.get("/api/v1/ingestion/jobs/latest")

    assert resp.status_code == 404
    assert resp.json()["status"] == 404


async def test_latest_job_reports_summary(client):
    store = app.state.job_store
    job = store.create_job()
    store.mark_running(job.job_id)
    store.mark_completed(job.job_id, IngestionSummary(total=3, processed=2, skipped_offline=1))

    resp = await client.get("/api/v1/ingestion/jobs/latest")

    assert resp.status_code == 200
    body = resp.json()
    assert body["job_id"] == job.job_id
    assert body["status"] == "completed"
    assert body["result"]["skipped_offline"] == 1


async def test_job_by_id(client):
    job = app.state.job_store.create_job()

    resp = await client.get(f"/api/v1/ingestion/jobs/{job.job_id}")

    assert resp.status_code == 200
    assert resp.json()["status"] == "pending"


async def test_unknown_job(client):
    resp = await client.get("/api/v1/ingestion/jobs/nope")

    assert resp.status_code == 404
    assert resp.json() == {"status": 404, "message": "Job nope not found"}
