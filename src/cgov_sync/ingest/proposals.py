"""Mapping of the ``proposal_list`` feed onto persisted governance actions."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from cgov_sync.domain.epochs import EpochClock
from cgov_sync.domain.records import ActionStatus, NewGovernanceAction
from cgov_sync.koios.coerce import as_int, as_str

ALLOWED_PROPOSAL_TYPES: frozenset[str] = frozenset(
    {
        "ParameterChange",
        "HardForkInitiation",
        "TreasuryWithdrawals",
        "NoConfidence",
        "NewCommittee",
        "NewConstitution",
        "InfoAction",
    }
)

UI_ACTION_TYPES: dict[str, str] = {
    "InfoAction": "Info",
    "TreasuryWithdrawals": "Treasury",
    "NewConstitution": "Constitution",
}

# submission epoch plus this many epochs when the feed carries no expiry
DEFAULT_EXPIRY_EPOCHS = 6


def map_action_type_to_ui(action_type: str) -> str:
    return UI_ACTION_TYPES.get(action_type, action_type)


def _body(meta_json: Any) -> Mapping[str, Any] | None:
    if not isinstance(meta_json, Mapping):
        return None
    body = meta_json.get("body")
    return body if isinstance(body, Mapping) else None


def extract_body_field(meta_json: Any, key: str) -> str | None:
    body = _body(meta_json)
    return as_str(body.get(key)) if body is not None else None


def extract_references(meta_json: Any) -> Any:
    body = _body(meta_json)
    return body.get("references") if body is not None else None


def derive_status(row: Mapping[str, Any], current_epoch: int) -> ActionStatus:
    if as_int(row.get("expired_epoch")) is not None:
        return ActionStatus.EXPIRED
    if as_int(row.get("dropped_epoch")) is not None:
        return ActionStatus.NOT_APPROVED
    if as_int(row.get("enacted_epoch")) is not None:
        return ActionStatus.APPROVED
    if as_int(row.get("ratified_epoch")) is not None:
        return ActionStatus.RATIFIED
    expiration = as_int(row.get("expiration"))
    if expiration is not None and current_epoch >= expiration:
        return ActionStatus.EXPIRED
    return ActionStatus.ACTIVE


@dataclass(slots=True, frozen=True)
class ProposalListing:
    proposal_id: str
    tx_hash: str
    proposal_index: int
    proposal_type: str
    block_time: int
    raw: Mapping[str, Any] = field(default_factory=dict)


def parse_proposal_listing(row: Mapping[str, Any]) -> ProposalListing | None:
    """Accept a ``proposal_list`` row only when its type is a known one."""

    proposal_id = as_str(row.get("proposal_id"))
    block_time = as_int(row.get("block_time"))
    proposal_type = as_str(row.get("proposal_type"))
    if proposal_id is None or block_time is None or proposal_type not in ALLOWED_PROPOSAL_TYPES:
        return None
    index = as_int(row.get("proposal_index"))
    return ProposalListing(
        proposal_id=proposal_id,
        tx_hash=as_str(row.get("proposal_tx_hash")) or "",
        proposal_index=index if index is not None else 0,
        proposal_type=proposal_type,
        block_time=block_time,
        raw=row,
    )


def build_new_action(
    listing: ProposalListing, clock: EpochClock, now: datetime
) -> NewGovernanceAction:
    submission_epoch = clock.epoch_of(listing.block_time)
    ui_type = map_action_type_to_ui(listing.proposal_type)
    meta_json = listing.raw.get("meta_json")
    expiration = as_int(listing.raw.get("expiration"))
    return NewGovernanceAction(
        proposal_id=listing.proposal_id,
        tx_hash=listing.tx_hash,
        proposal_index=listing.proposal_index,
        title=f"{ui_type} action {listing.proposal_id[:12]}",
        type=ui_type,
        status=derive_status(listing.raw, clock.current_epoch(now)),
        submission_epoch=submission_epoch,
        expiry_epoch=(
            expiration if expiration is not None else submission_epoch + DEFAULT_EXPIRY_EPOCHS
        ),
        description=extract_body_field(meta_json, "abstract"),
        rationale=extract_body_field(meta_json, "rationale"),
        motivation=extract_body_field(meta_json, "motivation"),
        anchor_url=as_str(listing.raw.get("meta_url")),
        anchor_hash=as_str(listing.raw.get("meta_hash")),
        references=extract_references(meta_json),
    )
