from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol

from cgov_sync.domain.chain import VoterRole
from cgov_sync.domain.records import (
    ActionStatus,
    DrepRecord,
    GovernanceActionRecord,
    NewGovernanceAction,
    SpoRecord,
    VoterVoteRecord,
)

if TYPE_CHECKING:
    from cgov_sync.aggregation.statistics import VoteStatistics


@dataclass(slots=True, frozen=True)
class SyncCheckpoint:
    """Last block processed by the slot-range sync."""

    slot: int
    block_hash: str
    block_height: int
    updated_at: datetime


class GovernanceStore(Protocol):
    """Upsert-capable persistence port.

    Every write is keyed by a stable identifier (proposal id, action + role +
    voter, identity id) so repeated and concurrent runs are safe without
    locking.
    Writes that cannot be applied raise :class:`~cgov_sync.errors.PersistenceError`.
    """

    async def upsert_action(
        self, action: NewGovernanceAction, now: datetime
    ) -> tuple[GovernanceActionRecord, bool]:
        """Create the action, or touch ``updated_at`` of the existing one."""

    async def get_action(self, action_id: int) -> GovernanceActionRecord | None: ...

    async def get_action_by_proposal(self, proposal_id: str) -> GovernanceActionRecord | None: ...

    async def list_actions(
        self,
        *,
        proposal_id: str | None = None,
        action_id: int | None = None,
        status: ActionStatus | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[GovernanceActionRecord]: ...

    async def count_actions(self, *, status: ActionStatus | None = None) -> int: ...

    async def list_refresh_candidates(self, limit: int) -> list[GovernanceActionRecord]:
        """Active actions, never-refreshed first, then least recently refreshed."""

    async def mark_action_refreshed(self, action_id: int, now: datetime) -> None: ...

    async def proposal_ids(self) -> set[str]: ...

    async def latest_submission_epoch(self) -> int | None: ...

    async def latest_activity_at(self) -> datetime | None:
        """Newest of action ``updated_at`` and statistics ``last_updated``."""

    async def list_votes(
        self, action_id: int, role: VoterRole | None = None
    ) -> list[VoterVoteRecord]: ...

    async def upsert_vote(self, vote: VoterVoteRecord) -> bool:
        """Insert or update in place; a ``None`` power keeps the stored one."""

    async def votes_missing_power(
        self,
        role: VoterRole,
        *,
        voter_id: str | None = None,
        epoch_from: int | None = None,
        epoch_to: int | None = None,
        limit: int | None = None,
    ) -> list[VoterVoteRecord]: ...

    async def apply_voting_power(
        self, role: VoterRole, voter_id: str, epoch_no: int, power: Decimal
    ) -> int:
        """Set power on matching votes that have none; returns rows updated."""

    async def distinct_voter_ids(self, role: VoterRole, limit: int | None = None) -> list[str]: ...

    async def upsert_statistics(self, statistics: VoteStatistics) -> None: ...

    async def get_statistics(self, action_id: int) -> VoteStatistics | None: ...

    async def existing_drep_ids(self, drep_ids: Iterable[str]) -> set[str]: ...

    async def upsert_drep(self, drep: DrepRecord) -> bool: ...

    async def existing_pool_ids(self, pool_ids: Iterable[str]) -> set[str]: ...

    async def upsert_spo(self, spo: SpoRecord) -> bool: ...

    async def get_checkpoint(self) -> SyncCheckpoint | None: ...

    async def save_checkpoint(self, checkpoint: SyncCheckpoint) -> None: ...
