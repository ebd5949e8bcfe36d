from __future__ import annotations

import asyncio
import json

import httpx

from cgov_sync.observability.logging import configure_logging
from cgov_sync.runtime.worker import SyncWorker
from cgov_sync.sync.coordinator import SyncCoordinator


def test_run_once_reports_outcome(make_context, fake_koios) -> None:
    fake_koios.on("GET", "/proposal_list", [])
    worker = SyncWorker(coordinator=SyncCoordinator(make_context()), poll_interval_seconds=1.0)

    outcome = asyncio.run(worker.run_once())

    assert outcome is not None
    assert outcome.skipped is False
    assert outcome.created_proposals == 0


def test_run_once_survives_upstream_failure(make_context, fake_koios) -> None:
    fake_koios.on("GET", "/proposal_list", lambda request: httpx.Response(502, text="bad"))
    worker = SyncWorker(coordinator=SyncCoordinator(make_context()))

    assert asyncio.run(worker.run_once()) is None


def test_cycle_number_is_bound_to_events(make_context, fake_koios, capsys) -> None:
    configure_logging("INFO")
    fake_koios.on("GET", "/proposal_list", [])
    worker = SyncWorker(coordinator=SyncCoordinator(make_context()))

    asyncio.run(worker.run_once())
    asyncio.run(worker.run_once())

    lines = capsys.readouterr().err.splitlines()
    events = [json.loads(line) for line in lines if line.startswith("{")]
    cycles = [event["cycle"] for event in events if event["event"] == "sync_cycle"]
    assert cycles == [1, 2]
    completed = [event["cycle"] for event in events if event["event"] == "sync_completed"]
    assert completed == [1, 2]
