from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from cgov_sync.config import AppSettings
from cgov_sync.errors import SyncError
from cgov_sync.sync.context import SyncContext, build_context
from cgov_sync.types import CommandResult, CommandStatus

T = TypeVar("T")


def run_in_context(settings: AppSettings, work: Callable[[SyncContext], Awaitable[T]]) -> T:
    """Build a context, run ``work`` on a fresh event loop, and always close the client."""

    async def _run() -> T:
        context = build_context(settings)
        try:
            return await work(context)
        finally:
            await context.aclose()

    return asyncio.run(_run())


def failed(command: str, error: SyncError | str) -> CommandResult:
    if isinstance(error, SyncError):
        details = error.to_dict()
    else:
        details = {"error": "invalid_parameters", "detail": error}
    return CommandResult(command=command, status=CommandStatus.FAILED, details=details)
