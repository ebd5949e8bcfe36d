"""Batched transaction detail fetch and governance artifact extraction."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from cgov_sync.domain.chain import (
    Block,
    GovernanceCertificate,
    GovernanceProposal,
    GovernanceVote,
)
from cgov_sync.ingest.normalize import parse_tx_artifacts
from cgov_sync.koios.client import KoiosClient
from cgov_sync.observability.logging import get_logger
from cgov_sync.pacing import Sleep, batched, paced


@dataclass(slots=True)
class ExtractedArtifacts:
    certificates: list[GovernanceCertificate] = field(default_factory=list)
    votes: list[GovernanceVote] = field(default_factory=list)
    proposals: list[GovernanceProposal] = field(default_factory=list)
    transactions: int = 0

    def sort(self) -> None:
        # stable sorts keep intra-transaction order for equal slots
        self.certificates.sort(key=lambda item: item.abs_slot)
        self.votes.sort(key=lambda item: item.abs_slot)
        self.proposals.sort(key=lambda item: item.abs_slot)


class GovernanceExtractor:
    def __init__(
        self,
        client: KoiosClient,
        *,
        batch_size: int = 50,
        batch_delay: float = 0.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self._client = client
        self._batch_size = batch_size
        self._batch_delay = batch_delay
        self._sleep = sleep

    async def extract(
        self,
        tx_hashes: Sequence[str],
        blocks: Iterable[Block] = (),
    ) -> ExtractedArtifacts:
        """Fetch ``tx_info`` in sequential batches and collect governance artifacts.

        Results are sorted ascending by ``abs_slot``.
        """

        block_times = {block.hash: block.block_time for block in blocks}
        result = ExtractedArtifacts()
        logger = get_logger("cgov_sync.extractor")

        batches = batched(tx_hashes, self._batch_size)
        async for batch in paced(batches, self._batch_delay, self._sleep):
            transactions = await self._client.tx_info(batch)
            for tx in transactions:
                artifacts = parse_tx_artifacts(tx, block_times)
                if artifacts is None:
                    continue
                result.transactions += 1
                result.certificates.extend(artifacts.certificates)
                result.votes.extend(artifacts.votes)
                result.proposals.extend(artifacts.proposals)
            logger.debug("tx_batch_extracted", requested=len(batch), returned=len(transactions))

        result.sort()
        return result
