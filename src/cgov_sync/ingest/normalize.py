"""Parsing of raw Koios payloads into domain artifacts.

Each upstream shape has one parser. A parser returns ``None`` (and logs the
reason) for a payload it does not recognize instead of coercing it into a
half-filled record.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from cgov_sync.domain.certificates import is_governance_certificate
from cgov_sync.domain.chain import (
    Anchor,
    GovActionRef,
    GovernanceCertificate,
    GovernanceProposal,
    GovernanceVote,
    ProposalAction,
    TxContext,
    VoteChoice,
    Voter,
    VoterRole,
    parse_action_type,
    parse_vote_choice,
    parse_voter_role,
)
from cgov_sync.domain.epochs import EpochClock
from cgov_sync.koios.coerce import as_decimal, as_int, as_str
from cgov_sync.observability.logging import get_logger

_TX_CONTEXT_INT_FIELDS = ("block_height", "epoch_no", "abs_slot", "tx_timestamp")


def _reject(kind: str, reason: str, **context: Any) -> None:
    get_logger("cgov_sync.ingest").warning(
        "unrecognized_payload", kind=kind, reason=reason, **context
    )


def parse_tx_context(tx: Mapping[str, Any], block_times: Mapping[str, int]) -> TxContext | None:
    """Build the context of one ``tx_info`` row.

    ``block_time`` comes from the scanned block when known and falls back to
    the transaction timestamp.
    """

    tx_hash = as_str(tx.get("tx_hash"))
    block_hash = as_str(tx.get("block_hash"))
    if tx_hash is None or block_hash is None:
        _reject("tx", "missing tx_hash or block_hash")
        return None

    values: dict[str, int] = {}
    for name in _TX_CONTEXT_INT_FIELDS:
        value = as_int(tx.get(name))
        if value is None:
            _reject("tx", f"missing {name}", tx_hash=tx_hash)
            return None
        values[name] = value

    return TxContext(
        tx_hash=tx_hash,
        block_hash=block_hash,
        block_height=values["block_height"],
        epoch_no=values["epoch_no"],
        abs_slot=values["abs_slot"],
        tx_timestamp=values["tx_timestamp"],
        block_time=block_times.get(block_hash) or values["tx_timestamp"],
    )


def parse_anchor(raw: Any) -> Anchor | None:
    if not isinstance(raw, Mapping):
        return None
    url = as_str(raw.get("url"))
    if url is None:
        return None
    return Anchor(url=url, hash=as_str(raw.get("data_hash")) or as_str(raw.get("hash")))


def credential_id(raw: Any) -> str | None:
    if isinstance(raw, str):
        return as_str(raw)
    if isinstance(raw, Mapping):
        return as_str(raw.get("key_hash")) or as_str(raw.get("script_hash"))
    return None


def parse_certificate(
    raw: Any, position: int, context: TxContext
) -> GovernanceCertificate | None:
    """Return the certificate when it is governance related, else ``None``."""

    if not isinstance(raw, Mapping):
        _reject("certificate", "not an object", tx_hash=context.tx_hash)
        return None
    cert_type = as_str(raw.get("type"))
    if cert_type is None or not is_governance_certificate(cert_type):
        return None
    info = raw.get("info")
    index = as_int(raw.get("index"))
    return GovernanceCertificate(
        type=cert_type,
        index=index if index is not None else position,
        context=context,
        info=dict(info) if isinstance(info, Mapping) else {},
    )


def parse_voting_procedure(raw: Any, context: TxContext) -> GovernanceVote | None:
    if not isinstance(raw, Mapping):
        _reject("voting_procedure", "not an object", tx_hash=context.tx_hash)
        return None
    voter_raw = raw.get("voter")
    if not isinstance(voter_raw, Mapping):
        _reject("voting_procedure", "missing voter", tx_hash=context.tx_hash)
        return None
    role = parse_voter_role(voter_raw.get("role"))
    credential = credential_id(voter_raw.get("credential"))
    choice = parse_vote_choice(raw.get("vote"))
    if role is None or credential is None or choice is None:
        _reject(
            "voting_procedure",
            "unknown voter role, credential or vote",
            tx_hash=context.tx_hash,
            role=voter_raw.get("role"),
            vote=raw.get("vote"),
        )
        return None

    action_ref = None
    ref_raw = raw.get("gov_action_proposal_id")
    if isinstance(ref_raw, Mapping):
        ref_tx = as_str(ref_raw.get("tx_hash"))
        ref_index = as_int(ref_raw.get("index"))
        if ref_tx is not None and ref_index is not None:
            action_ref = GovActionRef(tx_hash=ref_tx, index=ref_index)

    return GovernanceVote(
        voter=Voter(role=role, credential=credential),
        choice=choice,
        context=context,
        anchor=parse_anchor(raw.get("anchor")),
        action_ref=action_ref,
    )


def parse_proposal_procedure(
    raw: Any, position: int, context: TxContext
) -> GovernanceProposal | None:
    if not isinstance(raw, Mapping):
        _reject("proposal_procedure", "not an object", tx_hash=context.tx_hash)
        return None
    action_raw = raw.get("governance_action")
    action_type = (
        parse_action_type(action_raw.get("type")) if isinstance(action_raw, Mapping) else None
    )
    if action_type is None:
        _reject(
            "proposal_procedure",
            "unknown governance action type",
            tx_hash=context.tx_hash,
            action=action_raw.get("type") if isinstance(action_raw, Mapping) else None,
        )
        return None
    details = action_raw.get("details")
    index = as_int(raw.get("index"))
    return GovernanceProposal(
        index=index if index is not None else position,
        deposit=as_decimal(raw.get("deposit")),
        return_address=as_str(raw.get("return_address")),
        action=ProposalAction(
            type=action_type,
            details=dict(details) if isinstance(details, Mapping) else {},
        ),
        context=context,
        anchor=parse_anchor(raw.get("anchor")),
    )


def _list_field(tx: Mapping[str, Any], name: str) -> list[Any]:
    value = tx.get(name)
    return value if isinstance(value, list) else []


@dataclass(slots=True)
class TxArtifacts:
    certificates: list[GovernanceCertificate]
    votes: list[GovernanceVote]
    proposals: list[GovernanceProposal]


def parse_tx_artifacts(
    tx: Mapping[str, Any], block_times: Mapping[str, int]
) -> TxArtifacts | None:
    """Pull governance certificates, votes and proposals out of one transaction.

    Absent collections count as empty. Returns ``None`` when the transaction
    context itself is incomplete.
    """

    context = parse_tx_context(tx, block_times)
    if context is None:
        return None

    certificates = [
        cert
        for position, raw in enumerate(_list_field(tx, "certificates"))
        if (cert := parse_certificate(raw, position, context)) is not None
    ]
    votes = [
        vote
        for raw in _list_field(tx, "voting_procedures")
        if (vote := parse_voting_procedure(raw, context)) is not None
    ]
    proposals = [
        proposal
        for position, raw in enumerate(_list_field(tx, "proposal_procedures"))
        if (proposal := parse_proposal_procedure(raw, position, context)) is not None
    ]
    return TxArtifacts(certificates=certificates, votes=votes, proposals=proposals)


@dataclass(slots=True, frozen=True)
class ObservedVote:
    """One row of the per-proposal vote feed."""

    role: VoterRole
    voter_id: str
    choice: VoteChoice
    block_time: int
    epoch_no: int
    vote_tx_hash: str | None = None
    meta_url: str | None = None
    meta_hash: str | None = None

    @property
    def voted_at(self) -> datetime:
        return datetime.fromtimestamp(self.block_time, tz=UTC)


def parse_observed_vote(row: Mapping[str, Any], clock: EpochClock) -> ObservedVote | None:
    role = parse_voter_role(row.get("voter_role"))
    voter_id = as_str(row.get("voter_id"))
    choice = parse_vote_choice(row.get("vote"))
    block_time = as_int(row.get("block_time"))
    if role is None or voter_id is None or choice is None or block_time is None:
        _reject(
            "proposal_vote",
            "unknown role or vote, or missing voter_id or block_time",
            voter_role=row.get("voter_role"),
            vote=row.get("vote"),
        )
        return None
    epoch_no = as_int(row.get("epoch_no"))
    return ObservedVote(
        role=role,
        voter_id=voter_id,
        choice=choice,
        block_time=block_time,
        epoch_no=epoch_no if epoch_no is not None else clock.epoch_of(block_time),
        vote_tx_hash=as_str(row.get("vote_tx_hash")),
        meta_url=as_str(row.get("meta_url")),
        meta_hash=as_str(row.get("meta_hash")),
    )
