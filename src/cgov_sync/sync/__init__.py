"""Sync orchestration: slot windows, the cooldown-gated coordinator and backfills."""

from cgov_sync.sync.backfill import (
    backfill_dreps,
    backfill_spos,
    backfill_votes,
    backfill_voting_power,
)
from cgov_sync.sync.context import SyncContext, build_context, utc_now
from cgov_sync.sync.coordinator import (
    MissingActionsReport,
    SyncCoordinator,
    SyncOutcome,
    WorkBudget,
)
from cgov_sync.sync.slot_sync import GovernanceChanges, SlotSync, validate_slot_window

__all__ = [
    "GovernanceChanges",
    "MissingActionsReport",
    "SlotSync",
    "SyncContext",
    "SyncCoordinator",
    "SyncOutcome",
    "WorkBudget",
    "backfill_dreps",
    "backfill_spos",
    "backfill_votes",
    "backfill_voting_power",
    "build_context",
    "utc_now",
    "validate_slot_window",
]
