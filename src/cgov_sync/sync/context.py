from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import httpx

from cgov_sync.aggregation.voting_power import VotingPowerCache, VotingPowerResolver
from cgov_sync.config import AppSettings
from cgov_sync.domain.epochs import EpochClock
from cgov_sync.ingest.extractor import GovernanceExtractor
from cgov_sync.ingest.scanner import SlotRangeScanner
from cgov_sync.koios.client import KoiosClient
from cgov_sync.koios.fetch import RetryPolicy
from cgov_sync.pacing import Sleep
from cgov_sync.storage.base import GovernanceStore
from cgov_sync.storage.memory import MemoryGovernanceStore
from cgov_sync.sync.slot_sync import SlotSync


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class SyncContext:
    """Everything one sync run needs, built once and passed explicitly."""

    settings: AppSettings
    client: KoiosClient
    store: GovernanceStore
    resolver: VotingPowerResolver
    epochs: EpochClock
    sleep: Sleep = asyncio.sleep
    now: Callable[[], datetime] = field(default=utc_now)

    def slot_sync(self) -> SlotSync:
        return SlotSync(
            SlotRangeScanner(self.client),
            GovernanceExtractor(
                self.client,
                batch_size=self.settings.tx_batch_size,
                batch_delay=self.settings.batch_delay_seconds,
                sleep=self.sleep,
            ),
            self.store,
        )

    async def aclose(self) -> None:
        await self.client.aclose()


def build_context(
    settings: AppSettings,
    *,
    store: GovernanceStore | None = None,
    http: httpx.AsyncClient | None = None,
    policy: RetryPolicy | None = None,
    sleep: Sleep = asyncio.sleep,
    now: Callable[[], datetime] = utc_now,
) -> SyncContext:
    client = KoiosClient(settings, http=http, policy=policy)
    return SyncContext(
        settings=settings,
        client=client,
        store=store if store is not None else MemoryGovernanceStore(),
        resolver=VotingPowerResolver(client, VotingPowerCache()),
        epochs=EpochClock(settings.genesis_unix, settings.epoch_length_seconds),
        sleep=sleep,
        now=now,
    )
