from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import structlog

from cgov_sync.config import get_settings
from cgov_sync.errors import SyncError
from cgov_sync.observability.logging import configure_logging, get_logger
from cgov_sync.sync.context import build_context
from cgov_sync.sync.coordinator import SyncCoordinator, SyncOutcome


@dataclass(slots=True)
class SyncWorker:
    """Run the cooldown-gated sync on a fixed interval.

    A failed cycle is logged and the next one proceeds; the cooldown keeps
    back-to-back cycles cheap.
    """

    coordinator: SyncCoordinator
    poll_interval_seconds: float = 60.0
    cycles: int = field(default=0, init=False)

    async def run_once(self) -> SyncOutcome | None:
        self.cycles += 1
        logger = get_logger("sync_worker")
        # coordinator events inherit the cycle number
        with structlog.contextvars.bound_contextvars(cycle=self.cycles):
            try:
                outcome = await self.coordinator.run()
            except SyncError as exc:
                logger.error("sync_cycle_failed", error=exc.reason, detail=exc.message)
                return None
            logger.info(
                "sync_cycle",
                skipped=outcome.skipped,
                created_proposals=outcome.created_proposals,
                updated_active_actions=outcome.updated_active_actions,
            )
        return outcome

    async def run_forever(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self.poll_interval_seconds)


async def run_worker() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, settings.service_name)
    context = build_context(settings)
    worker = SyncWorker(
        coordinator=SyncCoordinator(context),
        poll_interval_seconds=settings.sync_poll_interval_seconds,
    )
    try:
        await worker.run_forever()
    finally:
        await context.aclose()


def main() -> None:
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
