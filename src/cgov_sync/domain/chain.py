"""Normalized on-chain governance artifacts.

Every certificate, vote and proposal carries the :class:`TxContext` of the
transaction it was extracted from; ordering across artifacts is by
``abs_slot``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import Any

from cgov_sync.domain.certificates import CertificateKind, certificate_kind


class VoterRole(StrEnum):
    DREP = "DRep"
    SPO = "SPO"
    CC = "ConstitutionalCommittee"

    @property
    def is_weighted(self) -> bool:
        return self is not VoterRole.CC


class VoteChoice(StrEnum):
    YES = "Yes"
    NO = "No"
    ABSTAIN = "Abstain"


class GovernanceActionType(StrEnum):
    PARAMETER_CHANGE = "ParameterChange"
    HARD_FORK_INITIATION = "HardForkInitiation"
    TREASURY_WITHDRAWALS = "TreasuryWithdrawals"
    NO_CONFIDENCE = "NoConfidence"
    UPDATE_COMMITTEE = "UpdateCommittee"
    NEW_CONSTITUTION = "NewConstitution"
    INFO_ACTION = "InfoAction"


_ROLE_ALIASES: dict[str, VoterRole] = {
    "drep": VoterRole.DREP,
    "spo": VoterRole.SPO,
    "pool": VoterRole.SPO,
    "constitutionalcommittee": VoterRole.CC,
    "cc": VoterRole.CC,
}

_CHOICE_ALIASES: dict[str, VoteChoice] = {
    "yes": VoteChoice.YES,
    "voteyes": VoteChoice.YES,
    "no": VoteChoice.NO,
    "voteno": VoteChoice.NO,
    "abstain": VoteChoice.ABSTAIN,
}

# proposal_list reports committee updates as NewCommittee; the rest are the
# short names persisted on governance actions
_ACTION_TYPE_ALIASES: dict[str, GovernanceActionType] = {
    "NewCommittee": GovernanceActionType.UPDATE_COMMITTEE,
    "Info": GovernanceActionType.INFO_ACTION,
    "Treasury": GovernanceActionType.TREASURY_WITHDRAWALS,
    "Constitution": GovernanceActionType.NEW_CONSTITUTION,
}


def parse_voter_role(raw: object) -> VoterRole | None:
    if not isinstance(raw, str):
        return None
    return _ROLE_ALIASES.get(raw.strip().replace("_", "").lower())


def parse_vote_choice(raw: object) -> VoteChoice | None:
    if not isinstance(raw, str):
        return None
    return _CHOICE_ALIASES.get(raw.strip().replace("_", "").lower())


def parse_action_type(raw: object) -> GovernanceActionType | None:
    if not isinstance(raw, str):
        return None
    candidate = raw.strip()
    if candidate in _ACTION_TYPE_ALIASES:
        return _ACTION_TYPE_ALIASES[candidate]
    try:
        return GovernanceActionType(candidate)
    except ValueError:
        return None


@dataclass(slots=True, frozen=True)
class Block:
    hash: str
    abs_slot: int
    block_height: int
    block_time: int
    epoch_no: int
    tx_count: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "hash": self.hash,
            "abs_slot": self.abs_slot,
            "block_height": self.block_height,
            "block_time": self.block_time,
            "epoch_no": self.epoch_no,
            "tx_count": self.tx_count,
        }


@dataclass(slots=True, frozen=True)
class TxContext:
    tx_hash: str
    block_hash: str
    block_height: int
    epoch_no: int
    abs_slot: int
    tx_timestamp: int
    block_time: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "tx_hash": self.tx_hash,
            "block_hash": self.block_hash,
            "block_height": self.block_height,
            "epoch_no": self.epoch_no,
            "abs_slot": self.abs_slot,
            "tx_timestamp": self.tx_timestamp,
            "block_time": self.block_time,
        }


@dataclass(slots=True, frozen=True)
class Anchor:
    url: str
    hash: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {"url": self.url, "hash": self.hash}


@dataclass(slots=True, frozen=True)
class Voter:
    role: VoterRole
    credential: str

    def as_dict(self) -> dict[str, Any]:
        return {"role": self.role.value, "credential": self.credential}


@dataclass(slots=True, frozen=True)
class GovActionRef:
    tx_hash: str
    index: int

    @property
    def key(self) -> str:
        return f"{self.tx_hash}#{self.index}"


@dataclass(slots=True, frozen=True)
class GovernanceCertificate:
    type: str
    index: int
    context: TxContext
    info: dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> CertificateKind:
        return certificate_kind(self.type)

    @property
    def abs_slot(self) -> int:
        return self.context.abs_slot

    def as_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "kind": self.kind.value,
            "index": self.index,
            "info": self.info,
            **self.context.as_dict(),
        }


@dataclass(slots=True, frozen=True)
class GovernanceVote:
    voter: Voter
    choice: VoteChoice
    context: TxContext
    anchor: Anchor | None = None
    action_ref: GovActionRef | None = None

    @property
    def abs_slot(self) -> int:
        return self.context.abs_slot

    def as_dict(self) -> dict[str, Any]:
        return {
            "voter": self.voter.as_dict(),
            "vote": self.choice.value,
            "anchor": self.anchor.as_dict() if self.anchor else None,
            "gov_action_proposal_id": (
                {"tx_hash": self.action_ref.tx_hash, "index": self.action_ref.index}
                if self.action_ref
                else None
            ),
            **self.context.as_dict(),
        }


@dataclass(slots=True, frozen=True)
class ProposalAction:
    type: GovernanceActionType
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class GovernanceProposal:
    index: int
    deposit: Decimal | None
    return_address: str | None
    action: ProposalAction
    context: TxContext
    anchor: Anchor | None = None

    @property
    def abs_slot(self) -> int:
        return self.context.abs_slot

    def as_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "deposit": str(self.deposit) if self.deposit is not None else None,
            "return_address": self.return_address,
            "governance_action": {
                "type": self.action.type.value,
                "details": self.action.details,
            },
            "anchor": self.anchor.as_dict() if self.anchor else None,
            **self.context.as_dict(),
        }
