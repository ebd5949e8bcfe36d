"""Cooldown-gated incremental sync of governance actions and their votes.

A run either skips (cooldown still active and not forced) or discovers new
proposals and refreshes a bounded set of active actions. Every write is an
upsert keyed by a stable id, so repeating a run is safe.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from cgov_sync.aggregation.statistics import refresh_action_statistics
from cgov_sync.config import AppSettings
from cgov_sync.domain.chain import VoterRole
from cgov_sync.domain.records import GovernanceActionRecord, VoterVoteRecord
from cgov_sync.errors import InvalidParameterError, UpstreamError
from cgov_sync.ingest.normalize import ObservedVote, parse_observed_vote
from cgov_sync.ingest.proposals import (
    ProposalListing,
    build_new_action,
    parse_proposal_listing,
)
from cgov_sync.observability.logging import get_logger
from cgov_sync.pacing import paced
from cgov_sync.sync.context import SyncContext
from cgov_sync.types import JsonDict

MAX_COOLDOWN_MS = 24 * 60 * 60 * 1000
VOTE_FETCH_FAILURE_DELAY = 0.25


def _check_range(name: str, value: int, upper: int) -> None:
    if not 0 <= value <= upper:
        raise InvalidParameterError(
            f"{name} must be between 0 and {upper}", detail={name: value}
        )


@dataclass(slots=True, frozen=True)
class WorkBudget:
    max_new_proposals: int = 5
    max_actions: int = 2
    max_votes_per_action: int = 25
    max_vp_lookups: int = 25

    def __post_init__(self) -> None:
        _check_range("max_new_proposals", self.max_new_proposals, 100)
        _check_range("max_actions", self.max_actions, 100)
        _check_range("max_votes_per_action", self.max_votes_per_action, 2000)
        _check_range("max_vp_lookups", self.max_vp_lookups, 2000)

    @classmethod
    def from_settings(cls, settings: AppSettings) -> WorkBudget:
        return cls(
            max_new_proposals=settings.max_new_proposals,
            max_actions=settings.max_actions,
            max_votes_per_action=settings.max_votes_per_action,
            max_vp_lookups=settings.max_vp_lookups,
        )


@dataclass(slots=True)
class SyncOutcome:
    now: datetime
    skipped: bool = False
    reason: str | None = None
    cooldown_ms: int | None = None
    age_ms: int | None = None
    last_updated: datetime | None = None
    since_epoch: int | None = None
    created_proposals: int = 0
    touched_proposals: int = 0
    updated_active_actions: int = 0
    failed_actions: list[str] = field(default_factory=list)
    votes_upserted: int = 0
    vp_lookups: int = 0

    def as_dict(self) -> dict[str, Any]:
        if self.skipped:
            return {
                "skipped": True,
                "reason": self.reason,
                "cooldown_ms": self.cooldown_ms,
                "age_ms": self.age_ms,
                "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            }
        return {
            "skipped": False,
            "created_proposals": self.created_proposals,
            "touched_proposals": self.touched_proposals,
            "updated_active_actions": self.updated_active_actions,
            "failed_actions": self.failed_actions,
            "votes_upserted": self.votes_upserted,
            "vp_lookups": self.vp_lookups,
            "since_epoch": self.since_epoch,
            "now": self.now.isoformat(),
        }


@dataclass(slots=True)
class MissingActionsReport:
    total_upstream: int = 0
    filtered_upstream: int = 0
    existing: int = 0
    missing: int = 0
    created: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "total_upstream": self.total_upstream,
            "filtered_upstream": self.filtered_upstream,
            "existing": self.existing,
            "missing": self.missing,
            "created": self.created,
        }


class SyncCoordinator:
    def __init__(self, context: SyncContext) -> None:
        self._ctx = context
        self._logger = get_logger("cgov_sync.coordinator")

    async def run(
        self,
        *,
        force: bool = False,
        cooldown_ms: int | None = None,
        budget: WorkBudget | None = None,
    ) -> SyncOutcome:
        settings = self._ctx.settings
        window = settings.sync_cooldown_ms if cooldown_ms is None else cooldown_ms
        _check_range("cooldown_ms", window, MAX_COOLDOWN_MS)
        budget = budget or WorkBudget.from_settings(settings)
        now = self._ctx.now()

        if not force:
            last_updated = await self._ctx.store.latest_activity_at()
            if last_updated is not None:
                age_ms = int((now - last_updated).total_seconds() * 1000)
                if age_ms < window:
                    self._logger.info("sync_skipped", reason="cooldown", age_ms=age_ms)
                    return SyncOutcome(
                        now=now,
                        skipped=True,
                        reason="cooldown",
                        cooldown_ms=window,
                        age_ms=age_ms,
                        last_updated=last_updated,
                    )

        outcome = SyncOutcome(now=now)
        await self.discover_new_proposals(outcome, budget.max_new_proposals)
        await self.refresh_active_actions(outcome, budget)
        self._logger.info("sync_completed", **outcome.as_dict())
        return outcome

    async def _fetch_listings(self) -> tuple[int, list[ProposalListing]]:
        rows = await self._ctx.client.proposal_list()
        listings = [listing for row in rows if (listing := parse_proposal_listing(row))]
        return len(rows), listings

    async def discover_new_proposals(self, outcome: SyncOutcome, max_new: int) -> None:
        """Create up to ``max_new`` proposals submitted since the latest known epoch.

        A failure to list proposals propagates: partial discovery is useless.
        """

        ctx = self._ctx
        since_epoch = await ctx.store.latest_submission_epoch() or 0
        outcome.since_epoch = since_epoch
        since_unix = ctx.epochs.epoch_start(since_epoch)

        _, listings = await self._fetch_listings()
        known = await ctx.store.proposal_ids()
        recent = sorted(
            (listing for listing in listings if listing.block_time >= since_unix),
            key=lambda listing: listing.block_time,
        )
        fresh = [listing for listing in recent if listing.proposal_id not in known]
        existing = [listing for listing in recent if listing.proposal_id in known]

        for listing in existing:
            await ctx.store.upsert_action(
                build_new_action(listing, ctx.epochs, outcome.now), outcome.now
            )
            outcome.touched_proposals += 1

        async for listing in paced(
            fresh[: max(0, max_new)], ctx.settings.proposal_delay_seconds, ctx.sleep
        ):
            record, created = await ctx.store.upsert_action(
                build_new_action(listing, ctx.epochs, outcome.now), outcome.now
            )
            if created:
                outcome.created_proposals += 1
                self._logger.info(
                    "proposal_created",
                    proposal_id=record.proposal_id,
                    action_id=record.id,
                    type=record.type,
                    status=record.status.value,
                )

    async def refresh_active_actions(self, outcome: SyncOutcome, budget: WorkBudget) -> None:
        ctx = self._ctx
        if budget.max_actions == 0:
            return
        for action in await ctx.store.list_refresh_candidates(budget.max_actions):
            try:
                rows = await ctx.client.proposal_votes(action.proposal_id)
            except UpstreamError as exc:
                self._logger.warning(
                    "action_votes_fetch_failed",
                    action_id=action.id,
                    proposal_id=action.proposal_id,
                    error=exc.reason,
                    detail=exc.message,
                )
                outcome.failed_actions.append(action.proposal_id)
                await ctx.sleep(VOTE_FETCH_FAILURE_DELAY)
                continue

            await self._apply_votes(action, rows, outcome, budget)
            statistics = await refresh_action_statistics(ctx.store, action, outcome.now)
            await ctx.store.mark_action_refreshed(action.id, outcome.now)
            outcome.updated_active_actions += 1
            self._logger.info(
                "action_refreshed",
                action_id=action.id,
                proposal_id=action.proposal_id,
                total_yes=statistics.total_yes,
                total_no=statistics.total_no,
                total_abstain=statistics.total_abstain,
            )
            await ctx.sleep(ctx.settings.action_delay_seconds)

    async def _apply_votes(
        self,
        action: GovernanceActionRecord,
        rows: list[JsonDict],
        outcome: SyncOutcome,
        budget: WorkBudget,
    ) -> None:
        ctx = self._ctx
        observed = sorted(
            (vote for row in rows if (vote := parse_observed_vote(row, ctx.epochs))),
            key=lambda vote: vote.block_time,
        )
        existing = {(v.role, v.voter_id): v for v in await ctx.store.list_votes(action.id)}

        processed = 0
        lookups = 0
        for vote in observed:
            if processed >= budget.max_votes_per_action:
                break
            if _unchanged(existing.get((vote.role, vote.voter_id)), vote):
                continue

            power = None
            if vote.role.is_weighted and lookups < budget.max_vp_lookups:
                before = ctx.resolver.lookups
                power = await ctx.resolver.resolve(vote.voter_id, vote.epoch_no, vote.role)
                # cache hits cost neither budget nor pacing
                if ctx.resolver.lookups > before:
                    lookups += 1
                    await ctx.sleep(ctx.settings.vp_lookup_delay_seconds)

            await ctx.store.upsert_vote(
                VoterVoteRecord(
                    action_id=action.id,
                    role=vote.role,
                    voter_id=vote.voter_id,
                    choice=vote.choice,
                    voted_at=vote.voted_at,
                    epoch_no=vote.epoch_no,
                    voting_power_ada=power,
                    anchor_url=vote.meta_url,
                    anchor_hash=vote.meta_hash,
                )
            )
            processed += 1

        outcome.votes_upserted += processed
        outcome.vp_lookups += lookups

    async def discover_missing_actions(self) -> MissingActionsReport:
        """Create every allowed proposal that is not persisted yet, without a budget."""

        ctx = self._ctx
        now = ctx.now()
        known = await ctx.store.proposal_ids()
        total, listings = await self._fetch_listings()
        missing = [listing for listing in listings if listing.proposal_id not in known]
        report = MissingActionsReport(
            total_upstream=total,
            filtered_upstream=len(listings),
            existing=len(known),
            missing=len(missing),
        )
        async for listing in paced(missing, ctx.settings.proposal_delay_seconds, ctx.sleep):
            _, created = await ctx.store.upsert_action(
                build_new_action(listing, ctx.epochs, now), now
            )
            if created:
                report.created += 1
        self._logger.info("missing_actions_synced", **report.as_dict())
        return report


def _unchanged(prior: VoterVoteRecord | None, vote: ObservedVote) -> bool:
    if prior is None:
        return False
    if prior.choice is not vote.choice or prior.voted_at != vote.voted_at:
        return False
    return prior.role is VoterRole.CC or prior.has_power
