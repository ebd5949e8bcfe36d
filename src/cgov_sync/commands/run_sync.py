from __future__ import annotations

from argparse import Namespace

from cgov_sync.commands._runtime import failed, run_in_context
from cgov_sync.config import AppSettings
from cgov_sync.errors import SyncError
from cgov_sync.sync.context import SyncContext
from cgov_sync.sync.coordinator import SyncCoordinator, SyncOutcome, WorkBudget
from cgov_sync.types import CommandResult, CommandStatus

COMMAND = "run-sync"


def _budget_from_args(args: Namespace, settings: AppSettings) -> WorkBudget:
    defaults = WorkBudget.from_settings(settings)

    def pick(name: str, default: int) -> int:
        value = getattr(args, name, None)
        return default if value is None else value

    return WorkBudget(
        max_new_proposals=pick("max_new_proposals", defaults.max_new_proposals),
        max_actions=pick("max_actions", defaults.max_actions),
        max_votes_per_action=pick("max_votes_per_action", defaults.max_votes_per_action),
        max_vp_lookups=pick("max_vp_lookups", defaults.max_vp_lookups),
    )


def run_sync(args: Namespace, settings: AppSettings) -> CommandResult:
    try:
        budget = _budget_from_args(args, settings)
    except SyncError as exc:
        return failed(COMMAND, exc)

    async def _work(context: SyncContext) -> SyncOutcome:
        return await SyncCoordinator(context).run(
            force=bool(getattr(args, "force", False)),
            cooldown_ms=getattr(args, "cooldown_ms", None),
            budget=budget,
        )

    try:
        outcome = run_in_context(settings, _work)
    except SyncError as exc:
        return failed(COMMAND, exc)

    status = CommandStatus.SKIPPED if outcome.skipped else CommandStatus.EXECUTED
    return CommandResult(command=COMMAND, status=status, details=outcome.as_dict())
