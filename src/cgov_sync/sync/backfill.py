"""Reference-data and vote backfills.

Each backfill fills gaps left by the budgeted sync: DRep and pool reference
rows, votes of persisted actions, and voting power of persisted votes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from cgov_sync.domain.chain import VoterRole
from cgov_sync.domain.records import DrepRecord, SpoRecord, VoterVoteRecord
from cgov_sync.errors import InvalidParameterError
from cgov_sync.ingest.normalize import parse_observed_vote
from cgov_sync.koios.coerce import as_bool, as_decimal, as_int, as_str
from cgov_sync.observability.logging import get_logger
from cgov_sync.pacing import batched, paced
from cgov_sync.sync.context import SyncContext

MAX_ERROR_DETAILS = 10


def _require_range(name: str, value: int, lower: int, upper: int) -> None:
    if not lower <= value <= upper:
        raise InvalidParameterError(
            f"{name} must be between {lower} and {upper}", detail={name: value}
        )


def _require_epoch_window(epoch_from: int | None, epoch_to: int | None) -> None:
    if epoch_from is not None and epoch_to is not None and epoch_from > epoch_to:
        raise InvalidParameterError(
            "epoch_from must be less than or equal to epoch_to",
            detail={"epoch_from": epoch_from, "epoch_to": epoch_to},
        )


def parse_drep(row: Mapping[str, Any]) -> DrepRecord | None:
    drep_id = as_str(row.get("drep_id"))
    if drep_id is None:
        return None
    return DrepRecord(
        drep_id=drep_id,
        hex=as_str(row.get("hex")),
        has_script=as_bool(row.get("has_script")),
        registered=as_bool(row.get("registered")),
        active=as_bool(row.get("active")),
        deposit=as_decimal(row.get("deposit")),
        amount=as_decimal(row.get("amount")),
        expires_epoch_no=as_int(row.get("expires_epoch_no")),
        meta_url=as_str(row.get("meta_url")),
        meta_hash=as_str(row.get("meta_hash")),
        meta_json=row.get("meta_json"),
    )


def parse_spo(row: Mapping[str, Any]) -> SpoRecord | None:
    pool_id = as_str(row.get("pool_id_bech32"))
    if pool_id is None:
        return None
    return SpoRecord(
        pool_id=pool_id,
        pool_id_hex=as_str(row.get("pool_id_hex")),
        status=as_str(row.get("pool_status")),
        ticker=as_str(row.get("ticker")),
        pool_group=as_str(row.get("pool_group")),
        meta_url=as_str(row.get("meta_url")),
        meta_hash=as_str(row.get("meta_hash")),
        active_epoch_no=as_int(row.get("active_epoch_no")),
        margin=as_decimal(row.get("margin")),
        fixed_cost=as_decimal(row.get("fixed_cost")),
        pledge=as_decimal(row.get("pledge")),
        deposit=as_decimal(row.get("deposit")),
        reward_addr=as_str(row.get("reward_addr")),
        owners=row.get("owners"),
        relays=row.get("relays"),
        active_stake=as_decimal(row.get("active_stake")),
        retiring_epoch=as_int(row.get("retiring_epoch")),
    )


@dataclass(slots=True)
class DrepBackfillReport:
    total_vote_dreps: int = 0
    existing_dreps: int = 0
    missing_dreps: int = 0
    created_dreps: int = 0
    dry_run: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "total_vote_dreps": self.total_vote_dreps,
            "existing_dreps": self.existing_dreps,
            "missing_dreps": self.missing_dreps,
            "created_dreps": self.created_dreps,
            "dry_run": self.dry_run,
        }


async def backfill_dreps(
    ctx: SyncContext,
    *,
    limit: int = 200,
    batch_size: int = 50,
    dry_run: bool = False,
) -> DrepBackfillReport:
    """Fetch ``drep_info`` for DReps that voted but have no reference row."""

    _require_range("limit", limit, 1, 2000)
    _require_range("batch_size", batch_size, 1, 100)

    voter_ids = await ctx.store.distinct_voter_ids(VoterRole.DREP, limit)
    existing = await ctx.store.existing_drep_ids(voter_ids)
    missing = [drep_id for drep_id in voter_ids if drep_id not in existing]
    report = DrepBackfillReport(
        total_vote_dreps=len(voter_ids),
        existing_dreps=len(existing),
        missing_dreps=len(missing),
        dry_run=dry_run,
    )
    if dry_run or not missing:
        return report

    batches = batched(missing, batch_size)
    async for batch in paced(batches, ctx.settings.batch_delay_seconds, ctx.sleep):
        for row in await ctx.client.drep_info(batch):
            drep = parse_drep(row)
            if drep is None:
                continue
            await ctx.store.upsert_drep(drep)
            report.created_dreps += 1

    get_logger("cgov_sync.backfill").info("dreps_backfilled", **report.as_dict())
    return report


@dataclass(slots=True)
class SpoBackfillReport:
    total_upstream: int = 0
    distinct_pools: int = 0
    existing_pools: int = 0
    missing_pools: int = 0
    upserted_pools: int = 0
    dry_run: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "total_upstream": self.total_upstream,
            "distinct_pools": self.distinct_pools,
            "existing_pools": self.existing_pools,
            "missing_pools": self.missing_pools,
            "upserted_pools": self.upserted_pools,
            "dry_run": self.dry_run,
        }


async def backfill_spos(
    ctx: SyncContext,
    *,
    limit: int = 2000,
    dry_run: bool = False,
) -> SpoBackfillReport:
    """Upsert pools from ``pool_list`` that have no reference row yet."""

    _require_range("limit", limit, 1, 10000)

    rows = await ctx.client.pool_list()
    pools: dict[str, SpoRecord] = {}
    for row in rows:
        spo = parse_spo(row)
        if spo is not None and spo.pool_id not in pools:
            pools[spo.pool_id] = spo

    existing = await ctx.store.existing_pool_ids(pools)
    missing = [spo for pool_id, spo in pools.items() if pool_id not in existing][:limit]
    report = SpoBackfillReport(
        total_upstream=len(rows),
        distinct_pools=len(pools),
        existing_pools=len(existing),
        missing_pools=len(missing),
        dry_run=dry_run,
    )
    if dry_run:
        return report

    for spo in missing:
        await ctx.store.upsert_spo(spo)
        report.upserted_pools += 1
    get_logger("cgov_sync.backfill").info("spos_backfilled", **report.as_dict())
    return report


@dataclass(slots=True)
class VotingPowerBackfillReport:
    role: VoterRole
    candidate_votes: int = 0
    distinct_pairs: int = 0
    votes_covered: int = 0
    processed_pairs: int = 0
    updated_votes: int = 0
    upstream_errors: int = 0
    error_details: list[dict[str, Any]] = field(default_factory=list)
    dry_run: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "role": self.role.value,
            "candidate_votes": self.candidate_votes,
            "distinct_pairs": self.distinct_pairs,
            "votes_covered": self.votes_covered,
            "processed_pairs": self.processed_pairs,
            "updated_votes": self.updated_votes,
            "upstream_errors": self.upstream_errors,
            "error_details": self.error_details,
            "dry_run": self.dry_run,
        }


async def backfill_voting_power(
    ctx: SyncContext,
    role: VoterRole,
    *,
    limit: int = 200,
    voter_id: str | None = None,
    epoch_from: int | None = None,
    epoch_to: int | None = None,
    dry_run: bool = False,
) -> VotingPowerBackfillReport:
    """Resolve power for persisted votes that carry an epoch but no power.

    Votes are grouped into distinct (identity, epoch) pairs, at most
    ``limit`` of them, so each pair costs one lookup.
    """

    if not role.is_weighted:
        raise InvalidParameterError("voting power backfill applies to DRep and SPO votes only")
    _require_range("limit", limit, 1, 1000)
    _require_epoch_window(epoch_from, epoch_to)

    candidates = await ctx.store.votes_missing_power(
        role,
        voter_id=voter_id,
        epoch_from=epoch_from,
        epoch_to=epoch_to,
        limit=limit * 2,
    )
    pairs: dict[tuple[str, int], int] = {}
    for vote in candidates:
        if vote.epoch_no is None:
            continue
        key = (vote.voter_id, vote.epoch_no)
        if key in pairs:
            pairs[key] += 1
        elif len(pairs) < limit:
            pairs[key] = 1

    report = VotingPowerBackfillReport(
        role=role,
        candidate_votes=len(candidates),
        distinct_pairs=len(pairs),
        votes_covered=sum(pairs.values()),
        dry_run=dry_run,
    )
    if dry_run:
        return report

    async for identity_id, epoch_no in paced(
        list(pairs), ctx.settings.vp_lookup_delay_seconds, ctx.sleep
    ):
        power = await ctx.resolver.resolve(identity_id, epoch_no, role)
        report.processed_pairs += 1
        if power is None:
            report.upstream_errors += 1
            if len(report.error_details) < MAX_ERROR_DETAILS:
                report.error_details.append({"identity_id": identity_id, "epoch_no": epoch_no})
            continue
        report.updated_votes += await ctx.store.apply_voting_power(
            role, identity_id, epoch_no, power
        )

    get_logger("cgov_sync.backfill").info("voting_power_backfilled", **report.as_dict())
    return report


@dataclass(slots=True)
class VoteBackfillReport:
    processed_proposals: int = 0
    total_fetched: int = 0
    upserted: dict[str, int] = field(
        default_factory=lambda: {role.value: 0 for role in VoterRole}
    )
    dry_run: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "processed_proposals": self.processed_proposals,
            "total_fetched": self.total_fetched,
            "upserted": dict(self.upserted),
            "dry_run": self.dry_run,
        }


async def backfill_votes(
    ctx: SyncContext,
    *,
    proposal_id: str | None = None,
    offset: int = 0,
    limit: int = 200,
    epoch_from: int | None = None,
    epoch_to: int | None = None,
    dry_run: bool = False,
) -> VoteBackfillReport:
    """Upsert every upstream vote of the scoped persisted actions.

    Power is left to :func:`backfill_voting_power`; existing power is kept.
    """

    _require_range("limit", limit, 1, 500)
    if offset < 0:
        raise InvalidParameterError("offset must be non-negative")
    _require_epoch_window(epoch_from, epoch_to)

    actions = await ctx.store.list_actions(proposal_id=proposal_id, offset=offset, limit=limit)
    report = VoteBackfillReport(processed_proposals=len(actions), dry_run=dry_run)

    async for action in paced(actions, ctx.settings.batch_delay_seconds, ctx.sleep):
        rows = await ctx.client.vote_list(
            action.proposal_id, epoch_from=epoch_from, epoch_to=epoch_to
        )
        report.total_fetched += len(rows)
        if dry_run:
            continue
        for row in rows:
            vote = parse_observed_vote(row, ctx.epochs)
            if vote is None:
                continue
            await ctx.store.upsert_vote(
                VoterVoteRecord(
                    action_id=action.id,
                    role=vote.role,
                    voter_id=vote.voter_id,
                    choice=vote.choice,
                    voted_at=vote.voted_at,
                    epoch_no=vote.epoch_no,
                    anchor_url=vote.meta_url,
                    anchor_hash=vote.meta_hash,
                )
            )
            report.upserted[vote.role.value] += 1

    get_logger("cgov_sync.backfill").info("votes_backfilled", **report.as_dict())
    return report

