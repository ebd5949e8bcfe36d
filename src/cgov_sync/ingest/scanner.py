"""Slot-range block and transaction scanning."""

from __future__ import annotations

from collections.abc import Iterable

from cgov_sync.domain.chain import Block
from cgov_sync.koios.client import KoiosClient
from cgov_sync.koios.coerce import as_int, as_str
from cgov_sync.observability.logging import get_logger
from cgov_sync.types import JsonDict


def parse_block(row: JsonDict) -> Block | None:
    block_hash = as_str(row.get("hash"))
    abs_slot = as_int(row.get("abs_slot"))
    if block_hash is None or abs_slot is None:
        get_logger("cgov_sync.scanner").warning(
            "unrecognized_payload", kind="block", reason="missing hash or abs_slot"
        )
        return None
    return Block(
        hash=block_hash,
        abs_slot=abs_slot,
        block_height=as_int(row.get("block_height")) or 0,
        block_time=as_int(row.get("block_time")) or 0,
        epoch_no=as_int(row.get("epoch_no")) or 0,
        tx_count=as_int(row.get("tx_count")) or 0,
    )


class SlotRangeScanner:
    def __init__(self, client: KoiosClient) -> None:
        self._client = client

    async def scan_blocks(
        self,
        from_slot: int,
        to_slot: int | None = None,
        max_blocks: int = 500,
    ) -> list[Block]:
        """Blocks with ``from_slot <= abs_slot <= to_slot``, ascending by slot.

        At most ``max_blocks`` are returned; callers resume from the last
        block's slot + 1.
        """

        rows = await self._client.blocks(from_slot, to_slot, max_rows=max_blocks)
        seen: set[str] = set()
        blocks: list[Block] = []
        for row in rows:
            block = parse_block(row)
            if block is None or block.hash in seen:
                continue
            seen.add(block.hash)
            blocks.append(block)
        blocks.sort(key=lambda block: block.abs_slot)
        return blocks[:max_blocks]

    async def scan_transactions_for_blocks(self, block_hashes: Iterable[str]) -> list[str]:
        hashes = list(block_hashes)
        if not hashes:
            return []
        rows = await self._client.block_txs(hashes)
        tx_hashes: list[str] = []
        seen: set[str] = set()
        for row in rows:
            tx_hash = as_str(row.get("tx_hash"))
            if tx_hash is None or tx_hash in seen:
                continue
            seen.add(tx_hash)
            tx_hashes.append(tx_hash)
        return tx_hashes
