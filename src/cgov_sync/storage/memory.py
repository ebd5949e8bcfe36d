"""Dictionary-backed :class:`GovernanceStore` for tests and single-process runs."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from itertools import count
from typing import TYPE_CHECKING

from cgov_sync.domain.chain import VoterRole
from cgov_sync.domain.records import (
    ActionStatus,
    DrepRecord,
    GovernanceActionRecord,
    NewGovernanceAction,
    SpoRecord,
    VoterVoteRecord,
)
from cgov_sync.errors import PersistenceError
from cgov_sync.storage.base import SyncCheckpoint

if TYPE_CHECKING:
    from cgov_sync.aggregation.statistics import VoteStatistics

VoteKey = tuple[int, VoterRole, str]


class MemoryGovernanceStore:
    def __init__(self) -> None:
        self._ids = count(1)
        self.actions: dict[int, GovernanceActionRecord] = {}
        self._by_proposal: dict[str, int] = {}
        self.votes: dict[VoteKey, VoterVoteRecord] = {}
        self.statistics: dict[int, VoteStatistics] = {}
        self.dreps: dict[str, DrepRecord] = {}
        self.spos: dict[str, SpoRecord] = {}
        self.checkpoint: SyncCheckpoint | None = None

    async def upsert_action(
        self, action: NewGovernanceAction, now: datetime
    ) -> tuple[GovernanceActionRecord, bool]:
        existing_id = self._by_proposal.get(action.proposal_id)
        if existing_id is not None:
            touched = replace(self.actions[existing_id], updated_at=now)
            self.actions[existing_id] = touched
            return touched, False

        action_id = next(self._ids)
        record = GovernanceActionRecord(
            id=action_id,
            proposal_id=action.proposal_id,
            tx_hash=action.tx_hash,
            proposal_index=action.proposal_index,
            title=action.title,
            type=action.type,
            status=action.status,
            submission_epoch=action.submission_epoch,
            expiry_epoch=action.expiry_epoch,
            created_at=now,
            updated_at=now,
            description=action.description,
            rationale=action.rationale,
            motivation=action.motivation,
            anchor_url=action.anchor_url,
            anchor_hash=action.anchor_hash,
            references=action.references,
            constitutionality=action.constitutionality,
        )
        self.actions[action_id] = record
        self._by_proposal[action.proposal_id] = action_id
        return record, True

    async def get_action(self, action_id: int) -> GovernanceActionRecord | None:
        return self.actions.get(action_id)

    async def get_action_by_proposal(self, proposal_id: str) -> GovernanceActionRecord | None:
        action_id = self._by_proposal.get(proposal_id)
        return self.actions.get(action_id) if action_id is not None else None

    async def list_actions(
        self,
        *,
        proposal_id: str | None = None,
        action_id: int | None = None,
        status: ActionStatus | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[GovernanceActionRecord]:
        matches = [
            record
            for record in sorted(self.actions.values(), key=lambda item: item.id)
            if (proposal_id is None or record.proposal_id == proposal_id)
            and (action_id is None or record.id == action_id)
            and (status is None or record.status == status)
        ]
        end = None if limit is None else offset + limit
        return matches[offset:end]

    async def count_actions(self, *, status: ActionStatus | None = None) -> int:
        return sum(
            1 for record in self.actions.values() if status is None or record.status == status
        )

    async def list_refresh_candidates(self, limit: int) -> list[GovernanceActionRecord]:
        active = [r for r in self.actions.values() if r.status == ActionStatus.ACTIVE]
        active.sort(
            key=lambda r: (
                r.last_refreshed_at is not None,
                r.last_refreshed_at or r.updated_at,
                r.updated_at,
                r.id,
            )
        )
        return active[: max(0, limit)]

    def _require_action(self, action_id: int) -> GovernanceActionRecord:
        record = self.actions.get(action_id)
        if record is None:
            raise PersistenceError(
                "governance action is not persisted", detail={"action_id": action_id}
            )
        return record

    async def mark_action_refreshed(self, action_id: int, now: datetime) -> None:
        record = self._require_action(action_id)
        self.actions[action_id] = replace(record, last_refreshed_at=now, updated_at=now)

    async def proposal_ids(self) -> set[str]:
        return set(self._by_proposal)

    async def latest_submission_epoch(self) -> int | None:
        return max((r.submission_epoch for r in self.actions.values()), default=None)

    async def latest_activity_at(self) -> datetime | None:
        moments = [r.updated_at for r in self.actions.values()]
        moments.extend(s.last_updated for s in self.statistics.values())
        return max(moments, default=None)

    async def list_votes(
        self, action_id: int, role: VoterRole | None = None
    ) -> list[VoterVoteRecord]:
        return [
            vote
            for (vote_action, vote_role, _), vote in self.votes.items()
            if vote_action == action_id and (role is None or vote_role is role)
        ]

    async def upsert_vote(self, vote: VoterVoteRecord) -> bool:
        existing = self.votes.get(vote.key)
        if existing is None:
            self.votes[vote.key] = vote
            return True
        epoch_no = vote.epoch_no if vote.epoch_no is not None else existing.epoch_no
        power = vote.voting_power_ada
        # power belongs to (identity, epoch); a re-vote in another epoch drops it
        if power is None and epoch_no == existing.epoch_no:
            power = existing.voting_power_ada
        self.votes[vote.key] = replace(
            vote,
            voting_power_ada=power,
            epoch_no=epoch_no,
            anchor_url=vote.anchor_url or existing.anchor_url,
            anchor_hash=vote.anchor_hash or existing.anchor_hash,
        )
        return False

    async def votes_missing_power(
        self,
        role: VoterRole,
        *,
        voter_id: str | None = None,
        epoch_from: int | None = None,
        epoch_to: int | None = None,
        limit: int | None = None,
    ) -> list[VoterVoteRecord]:
        matches = [
            vote
            for vote in self.votes.values()
            if vote.role is role
            and vote.voting_power_ada is None
            and vote.epoch_no is not None
            and (voter_id is None or vote.voter_id == voter_id)
            and (epoch_from is None or vote.epoch_no >= epoch_from)
            and (epoch_to is None or vote.epoch_no <= epoch_to)
        ]
        return matches if limit is None else matches[:limit]

    async def apply_voting_power(
        self, role: VoterRole, voter_id: str, epoch_no: int, power: Decimal
    ) -> int:
        updated = 0
        for key, vote in list(self.votes.items()):
            if (
                vote.role is role
                and vote.voter_id == voter_id
                and vote.epoch_no == epoch_no
                and vote.voting_power_ada is None
            ):
                self.votes[key] = replace(vote, voting_power_ada=power)
                updated += 1
        return updated

    async def distinct_voter_ids(self, role: VoterRole, limit: int | None = None) -> list[str]:
        ids: list[str] = []
        for vote in self.votes.values():
            if vote.role is role and vote.voter_id not in ids:
                ids.append(vote.voter_id)
                if limit is not None and len(ids) >= limit:
                    break
        return ids

    async def upsert_statistics(self, statistics: VoteStatistics) -> None:
        self._require_action(statistics.action_id)
        self.statistics[statistics.action_id] = statistics

    async def get_statistics(self, action_id: int) -> VoteStatistics | None:
        return self.statistics.get(action_id)

    async def existing_drep_ids(self, drep_ids: Iterable[str]) -> set[str]:
        return {drep_id for drep_id in drep_ids if drep_id in self.dreps}

    async def upsert_drep(self, drep: DrepRecord) -> bool:
        created = drep.drep_id not in self.dreps
        self.dreps[drep.drep_id] = drep
        return created

    async def existing_pool_ids(self, pool_ids: Iterable[str]) -> set[str]:
        return {pool_id for pool_id in pool_ids if pool_id in self.spos}

    async def upsert_spo(self, spo: SpoRecord) -> bool:
        created = spo.pool_id not in self.spos
        self.spos[spo.pool_id] = spo
        return created

    async def get_checkpoint(self) -> SyncCheckpoint | None:
        return self.checkpoint

    async def save_checkpoint(self, checkpoint: SyncCheckpoint) -> None:
        if self.checkpoint is None or checkpoint.slot >= self.checkpoint.slot:
            self.checkpoint = checkpoint
