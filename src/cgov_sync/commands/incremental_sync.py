from __future__ import annotations

from argparse import Namespace
from typing import Any

from cgov_sync.commands._runtime import failed, run_in_context
from cgov_sync.config import AppSettings
from cgov_sync.errors import SyncError
from cgov_sync.sync.context import SyncContext
from cgov_sync.types import CommandResult, CommandStatus

COMMAND = "incremental-sync"


def run_incremental_sync(args: Namespace, settings: AppSettings) -> CommandResult:
    start_slot = getattr(args, "start_slot", None)
    if start_slot is not None and start_slot < 0:
        return failed(COMMAND, "start_slot must be non-negative")

    batch_size = getattr(args, "batch_size", 100)
    max_blocks = getattr(args, "max_blocks", None)

    async def _work(context: SyncContext) -> dict[str, Any]:
        windows: list[dict[str, Any]] = []
        totals = {"blocks": 0, "certificates": 0, "votes": 0, "proposals": 0}
        next_from_slot = start_slot
        async for changes in context.slot_sync().incremental_sync(
            start_slot, batch_size=batch_size, max_blocks=max_blocks
        ):
            windows.append(
                {"from_slot": changes.from_slot, "to_slot": changes.to_slot, **changes.summary}
            )
            totals["blocks"] += len(changes.blocks)
            totals["certificates"] += len(changes.certificates)
            totals["votes"] += len(changes.votes)
            totals["proposals"] += len(changes.proposals)
            next_from_slot = changes.next_from_slot
        return {"windows": windows, "totals": totals, "next_from_slot": next_from_slot}

    try:
        details = run_in_context(settings, _work)
    except SyncError as exc:
        return failed(COMMAND, exc)

    status = CommandStatus.EXECUTED if details["windows"] else CommandStatus.SKIPPED
    return CommandResult(command=COMMAND, status=status, details=details)
