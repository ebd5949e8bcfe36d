"""Command handlers for the cgov-sync CLI."""

from cgov_sync.commands.epoch import run_epoch
from cgov_sync.commands.incremental_sync import run_incremental_sync
from cgov_sync.commands.run_sync import run_sync
from cgov_sync.commands.sync_from_slot import run_sync_from_slot

__all__ = [
    "run_epoch",
    "run_incremental_sync",
    "run_sync",
    "run_sync_from_slot",
]
