"""Persistence port and its in-memory implementation."""

from cgov_sync.storage.base import GovernanceStore, SyncCheckpoint
from cgov_sync.storage.memory import MemoryGovernanceStore

__all__ = ["GovernanceStore", "MemoryGovernanceStore", "SyncCheckpoint"]
