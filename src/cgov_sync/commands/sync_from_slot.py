from __future__ import annotations

from argparse import Namespace

from cgov_sync.commands._runtime import failed, run_in_context
from cgov_sync.config import AppSettings
from cgov_sync.errors import SyncError
from cgov_sync.sync.context import SyncContext
from cgov_sync.sync.slot_sync import GovernanceChanges, validate_slot_window
from cgov_sync.types import CommandResult, CommandStatus

COMMAND = "sync-from-slot"


def run_sync_from_slot(args: Namespace, settings: AppSettings) -> CommandResult:
    from_slot = getattr(args, "from_slot", None)
    to_slot = getattr(args, "to_slot", None)
    max_blocks = getattr(args, "max_blocks", None)
    if max_blocks is None:
        max_blocks = settings.default_max_blocks

    try:
        validate_slot_window(from_slot, to_slot, max_blocks)
    except SyncError as exc:
        return failed(COMMAND, exc)

    async def _work(context: SyncContext) -> GovernanceChanges:
        return await context.slot_sync().sync_from_slot(from_slot, to_slot, max_blocks)

    try:
        changes = run_in_context(settings, _work)
    except SyncError as exc:
        return failed(COMMAND, exc)

    details = changes.as_dict()
    if not getattr(args, "include_artifacts", False):
        for key in ("blocks", "certificates", "votes", "proposals"):
            details.pop(key)
    return CommandResult(command=COMMAND, status=CommandStatus.EXECUTED, details=details)
