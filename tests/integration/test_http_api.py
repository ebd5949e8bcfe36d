from __future__ import annotations

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from cgov_sync.api.app import build_app
from cgov_sync.errors import PersistenceError


@pytest.fixture
def client(make_context) -> TestClient:
    return TestClient(build_app(make_context()))


def test_livez(client: TestClient) -> None:
    response = client.get("/livez")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_contradictory_slot_window_is_400(client: TestClient, fake_koios) -> None:
    response = client.post(
        "/api/governance/sync_from_slot", params={"from_slot": 20, "to_slot": 10}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_parameters"
    assert fake_koios.requests == []


def test_zero_max_blocks_is_400(client: TestClient, fake_koios) -> None:
    response = client.post(
        "/api/governance/sync_from_slot", params={"from_slot": 0, "max_blocks": 0}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_parameters"
    assert fake_koios.requests == []


def test_missing_from_slot_is_400(client: TestClient) -> None:
    response = client.post("/api/governance/sync_from_slot")

    assert response.status_code == 400
    assert response.json()["detail"] == "from_slot is required"


def test_malformed_query_value_is_400_not_422(client: TestClient) -> None:
    response = client.post("/api/governance/sync_from_slot", params={"from_slot": "abc"})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_parameters"


def test_upstream_failure_is_502(client: TestClient, fake_koios) -> None:
    fake_koios.on("GET", "/blocks", lambda request: httpx.Response(500, text="down"))

    response = client.post("/api/governance/sync_from_slot", params={"from_slot": 0})

    assert response.status_code == 502
    assert response.json()["error"] == "upstream_error"


def test_upstream_timeout_is_504(client: TestClient, fake_koios) -> None:
    def timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    fake_koios.on("GET", "/blocks", timeout)

    response = client.post("/api/governance/sync_from_slot", params={"from_slot": 0})

    assert response.status_code == 504
    assert response.json()["error"] == "upstream_timeout"


def test_request_deadline_is_504(make_context, fake_koios) -> None:
    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, json=[])

    fake_koios.on("GET", "/blocks", slow)
    client = TestClient(build_app(make_context(request_deadline_seconds=0.01)))

    response = client.post("/api/governance/sync_from_slot", params={"from_slot": 0})

    assert response.status_code == 504
    assert response.json()["error"] == "timeout"


def test_sync_then_read_actions(client: TestClient, fake_koios, proposal_row) -> None:
    fake_koios.on("GET", "/proposal_list", [proposal_row("p1"), proposal_row("p2")])
    fake_koios.on("GET", "/proposal_votes", [])

    sync = client.post("/api/governance/sync", params={"force": "true", "max_actions": 0})
    listing = client.get("/api/governance/actions", params={"limit": 1, "offset": 1})

    assert sync.status_code == 200
    assert sync.json()["data"]["created_proposals"] == 2
    body = listing.json()
    assert (body["total"], body["count"], body["offset"], body["limit"]) == (2, 1, 1, 1)
    assert body["data"][0]["proposal_id"] == "p2"
    assert body["data"][0]["type"] == "Info"


def test_sync_within_cooldown_is_skipped(client: TestClient, fake_koios, proposal_row) -> None:
    fake_koios.on("GET", "/proposal_list", [proposal_row("p1")])
    client.post("/api/governance/sync_missing_gov_actions")
    calls_before = len(fake_koios.requests)

    response = client.post("/api/governance/sync")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["skipped"] is True
    assert data["reason"] == "cooldown"
    assert data["age_ms"] == 0
    assert len(fake_koios.requests) == calls_before


def test_budget_out_of_range_is_400(client: TestClient, fake_koios) -> None:
    response = client.post("/api/governance/sync", params={"max_votes": 5000})

    assert response.status_code == 400
    assert fake_koios.requests == []


@pytest.mark.parametrize(
    "params",
    [{"limit": 0}, {"limit": 201}, {"offset": -1}, {"status": "Bogus"}],
)
def test_action_listing_validation(client: TestClient, params) -> None:
    assert client.get("/api/governance/actions", params=params).status_code == 400


def test_missing_statistics_is_404(client: TestClient) -> None:
    response = client.get("/api/governance/actions/999/statistics")

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_statistics_of_unrefreshed_action_is_404(
    client: TestClient, fake_koios, proposal_row
) -> None:
    fake_koios.on("GET", "/proposal_list", [proposal_row("p1")])
    client.post("/api/governance/sync_missing_gov_actions")

    response = client.get("/api/governance/actions/1/statistics")

    assert response.status_code == 404
    assert response.json()["detail"] == "no statistics for governance action"


def test_store_write_failure_is_500(
    make_context, fake_koios, proposal_row, store, monkeypatch
) -> None:
    async def refuse(action_id, now):
        raise PersistenceError("write rejected", detail={"action_id": action_id})

    monkeypatch.setattr(store, "mark_action_refreshed", refuse)
    fake_koios.on("GET", "/proposal_list", [proposal_row("p1")])
    fake_koios.on("GET", "/proposal_votes", [])
    client = TestClient(build_app(make_context()))

    response = client.post("/api/governance/sync", params={"force": "true"})

    assert response.status_code == 500
    assert response.json()["error"] == "persistence_error"


def test_voting_power_backfill_rejects_committee(client: TestClient) -> None:
    response = client.post("/api/governance/sync_missing_voting_power", params={"role": "cc"})

    assert response.status_code == 400


def test_statistics_recompute_dry_run(client: TestClient) -> None:
    response = client.post("/api/governance/sync_vote_statistics", params={"dry_run": "true"})

    assert response.status_code == 200
    assert response.json()["data"] == {
        "processed_actions": 0,
        "updated_statistics": 0,
        "dry_run": True,
        "preview": [],
    }
