"""Slot-range governance sync and incremental resumption."""

from __future__ import annotations

from collections import Counter
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from cgov_sync.domain.certificates import CertificateKind
from cgov_sync.domain.chain import (
    Block,
    GovernanceCertificate,
    GovernanceProposal,
    GovernanceVote,
)
from cgov_sync.errors import InvalidParameterError
from cgov_sync.ingest.extractor import GovernanceExtractor
from cgov_sync.ingest.scanner import SlotRangeScanner
from cgov_sync.observability.logging import get_logger
from cgov_sync.storage.base import GovernanceStore, SyncCheckpoint

MAX_BLOCKS_LIMIT = 1000

_UPDATE_COUNTERS: dict[CertificateKind, str] = {
    CertificateKind.POOL_REGISTRATION: "pool_registrations",
    CertificateKind.POOL_RETIREMENT: "pool_retirements",
    CertificateKind.DREP_REGISTRATION: "drep_registrations",
    CertificateKind.DREP_DEREGISTRATION: "drep_deregistrations",
    CertificateKind.VOTE_DELEGATION: "vote_delegations",
    CertificateKind.COMMITTEE_UPDATE: "committee_updates",
    CertificateKind.STAKE_DELEGATION: "stake_delegations",
}


def count_governance_updates(certificates: list[GovernanceCertificate]) -> dict[str, int]:
    counts = Counter(
        _UPDATE_COUNTERS[cert.kind] for cert in certificates if cert.kind in _UPDATE_COUNTERS
    )
    return {name: counts.get(name, 0) for name in _UPDATE_COUNTERS.values()}


@dataclass(slots=True)
class GovernanceChanges:
    from_slot: int
    to_slot: int
    blocks: list[Block] = field(default_factory=list)
    certificates: list[GovernanceCertificate] = field(default_factory=list)
    votes: list[GovernanceVote] = field(default_factory=list)
    proposals: list[GovernanceProposal] = field(default_factory=list)
    transactions: int = 0

    @property
    def next_from_slot(self) -> int:
        """Where the next window starts; unchanged when nothing was scanned."""

        if not self.blocks:
            return self.from_slot
        return self.blocks[-1].abs_slot + 1

    @property
    def summary(self) -> dict[str, int]:
        return {
            "total_certificates": len(self.certificates),
            "total_votes": len(self.votes),
            "total_proposals": len(self.proposals),
            "blocks_scanned": len(self.blocks),
            "transactions_scanned": self.transactions,
        }

    def as_dict(self) -> dict[str, Any]:
        return {
            "from_slot": self.from_slot,
            "to_slot": self.to_slot,
            "next_from_slot": self.next_from_slot,
            "blocks": [block.as_dict() for block in self.blocks],
            "certificates": [cert.as_dict() for cert in self.certificates],
            "votes": [vote.as_dict() for vote in self.votes],
            "proposals": [proposal.as_dict() for proposal in self.proposals],
            "summary": self.summary,
            "governance_updates": count_governance_updates(self.certificates),
        }


def validate_slot_window(
    from_slot: int | None, to_slot: int | None, max_blocks: int
) -> int:
    if from_slot is None:
        raise InvalidParameterError("from_slot is required")
    if from_slot < 0:
        raise InvalidParameterError("from_slot must be non-negative")
    if to_slot is not None and to_slot < from_slot:
        raise InvalidParameterError(
            "from_slot must be less than or equal to to_slot",
            detail={"from_slot": from_slot, "to_slot": to_slot},
        )
    if not 1 <= max_blocks <= MAX_BLOCKS_LIMIT:
        raise InvalidParameterError(
            f"max_blocks must be between 1 and {MAX_BLOCKS_LIMIT}",
            detail={"max_blocks": max_blocks},
        )
    return from_slot


class SlotSync:
    """Scan a slot window and extract its governance artifacts."""

    def __init__(
        self,
        scanner: SlotRangeScanner,
        extractor: GovernanceExtractor,
        store: GovernanceStore | None = None,
    ) -> None:
        self._scanner = scanner
        self._extractor = extractor
        self._store = store

    async def sync_from_slot(
        self,
        from_slot: int | None,
        to_slot: int | None = None,
        max_blocks: int = 500,
    ) -> GovernanceChanges:
        start = validate_slot_window(from_slot, to_slot, max_blocks)
        logger = get_logger("cgov_sync.slot_sync")

        blocks = await self._scanner.scan_blocks(start, to_slot, max_blocks)
        if not blocks:
            logger.info("slot_window_empty", from_slot=start, to_slot=to_slot)
            return GovernanceChanges(from_slot=start, to_slot=to_slot or start)

        tx_hashes = await self._scanner.scan_transactions_for_blocks(b.hash for b in blocks)
        artifacts = await self._extractor.extract(tx_hashes, blocks)
        changes = GovernanceChanges(
            from_slot=start,
            to_slot=blocks[-1].abs_slot,
            blocks=blocks,
            certificates=artifacts.certificates,
            votes=artifacts.votes,
            proposals=artifacts.proposals,
            transactions=artifacts.transactions,
        )
        if self._store is not None:
            last = blocks[-1]
            await self._store.save_checkpoint(
                SyncCheckpoint(
                    slot=last.abs_slot,
                    block_hash=last.hash,
                    block_height=last.block_height,
                    updated_at=datetime.now(UTC),
                )
            )
        logger.info(
            "slot_window_synced",
            from_slot=start,
            to_slot=changes.to_slot,
            next_from_slot=changes.next_from_slot,
            **changes.summary,
        )
        return changes

    async def incremental_sync(
        self,
        start_slot: int | None = None,
        *,
        batch_size: int = 100,
        max_blocks: int | None = None,
    ) -> AsyncIterator[GovernanceChanges]:
        """Yield consecutive windows until the chain tip or the block budget.

        Without ``start_slot`` the scan resumes after the stored checkpoint.
        """

        if batch_size <= 0:
            raise InvalidParameterError("batch_size must be positive")
        if max_blocks is not None and max_blocks <= 0:
            raise InvalidParameterError("max_blocks must be positive")

        current = start_slot
        if current is None:
            checkpoint = await self._store.get_checkpoint() if self._store else None
            current = checkpoint.slot + 1 if checkpoint is not None else 0

        fetched = 0
        while max_blocks is None or fetched < max_blocks:
            window = batch_size if max_blocks is None else min(batch_size, max_blocks - fetched)
            changes = await self.sync_from_slot(
                current, max_blocks=min(window, MAX_BLOCKS_LIMIT)
            )
            if not changes.blocks:
                break
            yield changes
            fetched += len(changes.blocks)
            current = changes.next_from_slot
