"""Slot scan, budgeted sync, backfills and statistics against one fake upstream."""

from __future__ import annotations

import asyncio
import json
from decimal import Decimal

import httpx

from cgov_sync.aggregation.statistics import recompute_statistics
from cgov_sync.domain.chain import VoterRole
from cgov_sync.sync.backfill import backfill_dreps, backfill_voting_power
from cgov_sync.sync.coordinator import SyncCoordinator, WorkBudget


def _install_upstream(fake_koios, proposal_row, vote_row, tx_row) -> None:
    fake_koios.on(
        "GET",
        "/blocks",
        [{"hash": "b900", "abs_slot": 900, "block_height": 45, "block_time": 1_900}],
    )
    fake_koios.on("POST", "/block_txs", [{"block_hash": "b900", "tx_hash": "t900"}])
    fake_koios.on(
        "POST",
        "/tx_info",
        [tx_row("t900", "b900", 900, certificates=[{"type": "drep_registration"}])],
    )
    fake_koios.on("GET", "/proposal_list", [proposal_row("p1")])
    fake_koios.on(
        "GET",
        "/proposal_votes",
        [vote_row("drep1a", "Yes"), vote_row("drep1b", "No"), vote_row("pool1a", role="SPO")],
    )

    def drep_info(request: httpx.Request) -> httpx.Response:
        ids = json.loads(request.content)["_drep_ids"]
        return httpx.Response(200, json=[{"drep_id": i, "active": True} for i in ids])

    def drep_power(request: httpx.Request) -> httpx.Response:
        amounts = {"drep1a": "3000000", "drep1b": "1000000"}
        return httpx.Response(
            200, json=[{"voting_power": amounts[request.url.params["_drep_id"]]}]
        )

    fake_koios.on("POST", "/drep_info", drep_info)
    fake_koios.on("GET", "/drep_voting_power_history", drep_power)


def test_full_pipeline(make_context, fake_koios, store, clock, proposal_row, vote_row, tx_row):
    _install_upstream(fake_koios, proposal_row, vote_row, tx_row)
    context = make_context()

    async def scenario():
        changes = await context.slot_sync().sync_from_slot(0, max_blocks=10)
        outcome = await SyncCoordinator(context).run(
            force=True, budget=WorkBudget(max_vp_lookups=0)
        )
        drep_report = await backfill_dreps(context)
        power_report = await backfill_voting_power(context, VoterRole.DREP)
        recompute = await recompute_statistics(store, clock())
        action = await store.get_action_by_proposal("p1")
        statistics = await store.get_statistics(action.id)
        checkpoint = await store.get_checkpoint()
        await context.aclose()
        return changes, outcome, drep_report, power_report, recompute, statistics, checkpoint

    changes, outcome, drep_report, power_report, recompute, statistics, checkpoint = (
        asyncio.run(scenario())
    )

    assert changes.summary["blocks_scanned"] == 1
    assert changes.summary["total_certificates"] == 1
    assert checkpoint.slot == 900

    assert outcome.created_proposals == 1
    assert outcome.votes_upserted == 3
    assert outcome.vp_lookups == 0

    assert drep_report.created_dreps == 2
    assert power_report.updated_votes == 2
    assert power_report.upstream_errors == 0
    assert recompute.updated_statistics == 1

    assert statistics.drep.yes_ada == Decimal(3)
    assert statistics.drep.no_ada == Decimal(1)
    assert statistics.drep.yes_percent == Decimal(75)
    assert statistics.spo.yes_count == 1
    assert statistics.spo.unresolved_count == 1
    assert statistics.total_no == 1
