import pytest

from contact_indexer.main import app
from contact_indexer.services.contact_store import ContactStore
from tests.factories import make_entry, make_result


@pytest.fixture
async def seeded(client):
    store = ContactStore(app.state.database)
    acme = await store.upsert(
        make_entry("https://acme.com/", commercial="Acme Plumbing", legal="Acme Plumbing LLC"),
        make_result("https://acme.com/", phones=["+15551234567"], address="1 Main Street", coords=(40.0044966, -75.0)),
    )
    bolt = await store.upsert(
        make_entry("https://bolt.com/", commercial="Bolt Electric"),
        make_result("https://bolt.com/", coords=(40.134897, -75.0)),
    )
    return {"acme": acme, "bolt": bolt}


async def test_search_returns_scored_page(client, seeded):
    resp = await client.get("/api/v1/search", params={"q": "plumbing"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == 200
    assert body["total"] == 1
    assert body["page"] == 1
    assert body["pages"] == 1
    result = body["results"][0]
    assert result["url"] == "https://acme.com/"
    assert result["_score"] == "1.000"
    assert result["phones"] == ["+15551234567"]
    assert result["coords"] == {"lat": 40.0044966, "lng": -75.0}


async def test_search_without_query_is_bad_request(client):
    resp = await client.get("/api/v1/search")

    assert resp.status_code == 400
    assert resp.json() == {"status": 400, "message": "Query parameter 'q' is required"}


async def test_search_by_numeric_id(client, seeded):
    resp = await client.get("/api/v1/search", params={"q": str(seeded["bolt"].id)})

    body = resp.json()
    assert body["total"] == 1
    assert body["results"][0]["url"] == "https://bolt.com/"


async def test_search_near_filters_by_distance(client, seeded):
    params = {"q": "com", "near[lat]": 40.0, "near[lng]": -75.0, "near[maxDistance]": 1000}
    resp = await client.get("/api/v1/search", params=params)

    assert [r["url"] for r in resp.json()["results"]] == ["https://acme.com/"]


@pytest.mark.parametrize(
    "near",
    [{"near[lat]": 95, "near[lng]": 0}, {"near[lat]": 0, "near[lng]": -181}],
)
async def test_search_near_out_of_range_is_unprocessable(client, near):
    resp = await client.get("/api/v1/search", params={"q": "acme", **near})

    assert resp.status_code == 422


async def test_search_no_results(client, seeded):
    resp = await client.get("/api/v1/search", params={"q": "zzzzzz"})

    assert resp.status_code == 200
    assert resp.json()["total"] == 0
    assert resp.json()["results"] == []


async def test_search_store_unavailable(client):
    await app.state.database.close()

    resp = await client.get("/api/v1/search", params={"q": "acme"})

    assert resp.status_code == 503
    assert resp.headers["Retry-After"] == "5"
    assert resp.json()["status"] == 503


async def test_search_unexpected_error_is_500(client, monkeypatch):
    async def boom(*args, **kwargs):
        raise RuntimeError("index corrupted")

    monkeypatch.setattr(app.state.search_service, "search", boom)
    resp = await client.get("/api/v1/search", params={"q": "acme"})

    assert resp.status_code == 500
    assert resp.json() == {"status": 500, "message": "index corrupted"}


async def test_get_by_id(client, seeded):
    resp = await client.get("/api/v1/get_by_id", params={"id": seeded["acme"].id})

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Contact found!"
    assert body["result"]["company_legal_name"] == "Acme Plumbing LLC"


async def test_get_by_id_not_found(client, seeded):
    resp = await client.get("/api/v1/get_by_id", params={"id": 9999})

    assert resp.status_code == 404
    assert resp.json() == {"status": 404, "message": "Contact not found!"}
