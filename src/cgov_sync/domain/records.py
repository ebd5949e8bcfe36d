"""Persisted entity shapes exchanged with the governance store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any

from cgov_sync.domain.chain import VoteChoice, VoterRole


class ActionStatus(StrEnum):
    ACTIVE = "Active"
    RATIFIED = "Ratified"
    EXPIRED = "Expired"
    APPROVED = "Approved"
    NOT_APPROVED = "Not approved"


@dataclass(slots=True, frozen=True)
class NewGovernanceAction:
    proposal_id: str
    tx_hash: str
    proposal_index: int
    title: str
    type: str
    status: ActionStatus
    submission_epoch: int
    expiry_epoch: int
    description: str | None = None
    rationale: str | None = None
    motivation: str | None = None
    anchor_url: str | None = None
    anchor_hash: str | None = None
    references: Any = None
    constitutionality: str = "Constitutional"


@dataclass(slots=True, frozen=True)
class GovernanceActionRecord:
    id: int
    proposal_id: str
    tx_hash: str
    proposal_index: int
    title: str
    type: str
    status: ActionStatus
    submission_epoch: int
    expiry_epoch: int
    created_at: datetime
    updated_at: datetime
    last_refreshed_at: datetime | None = None
    description: str | None = None
    rationale: str | None = None
    motivation: str | None = None
    anchor_url: str | None = None
    anchor_hash: str | None = None
    references: Any = None
    constitutionality: str = "Constitutional"

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "proposal_id": self.proposal_id,
            "tx_hash": self.tx_hash,
            "proposal_index": self.proposal_index,
            "title": self.title,
            "type": self.type,
            "status": self.status.value,
            "submission_epoch": self.submission_epoch,
            "expiry_epoch": self.expiry_epoch,
            "description": self.description,
            "rationale": self.rationale,
            "motivation": self.motivation,
            "anchor_url": self.anchor_url,
            "anchor_hash": self.anchor_hash,
            "references": self.references,
            "constitutionality": self.constitutionality,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "last_refreshed_at": (
                self.last_refreshed_at.isoformat() if self.last_refreshed_at else None
            ),
        }


@dataclass(slots=True, frozen=True)
class VoterVoteRecord:
    """One voter's current vote on one action; unique by (action, role, voter)."""

    action_id: int
    role: VoterRole
    voter_id: str
    choice: VoteChoice
    voted_at: datetime
    epoch_no: int | None = None
    voting_power_ada: Decimal | None = None
    anchor_url: str | None = None
    anchor_hash: str | None = None

    @property
    def key(self) -> tuple[int, VoterRole, str]:
        return (self.action_id, self.role, self.voter_id)

    @property
    def has_power(self) -> bool:
        return self.voting_power_ada is not None


@dataclass(slots=True, frozen=True)
class DrepRecord:
    drep_id: str
    hex: str | None = None
    has_script: bool | None = None
    registered: bool | None = None
    active: bool | None = None
    deposit: Decimal | None = None
    amount: Decimal | None = None
    expires_epoch_no: int | None = None
    meta_url: str | None = None
    meta_hash: str | None = None
    meta_json: Any = None


@dataclass(slots=True, frozen=True)
class SpoRecord:
    pool_id: str
    pool_id_hex: str | None = None
    status: str | None = None
    ticker: str | None = None
    pool_group: str | None = None
    meta_url: str | None = None
    meta_hash: str | None = None
    active_epoch_no: int | None = None
    margin: Decimal | None = None
    fixed_cost: Decimal | None = None
    pledge: Decimal | None = None
    deposit: Decimal | None = None
    reward_addr: str | None = None
    owners: Any = None
    relays: Any = None
    active_stake: Decimal | None = None
    retiring_epoch: int | None = None
