"""FastAPI trigger endpoints over the sync engine.

Routes are thin: they validate query parameters, call one core operation and
wrap its report in a ``{data}`` envelope. Errors become ``{error, detail}``
with the status carried by the exception.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cgov_sync.aggregation.statistics import recompute_statistics
from cgov_sync.config import get_settings
from cgov_sync.domain.chain import VoterRole
from cgov_sync.domain.records import ActionStatus
from cgov_sync.errors import InvalidParameterError, NotFoundError, SyncError
from cgov_sync.observability.logging import configure_logging, get_logger
from cgov_sync.sync.backfill import (
    backfill_dreps,
    backfill_spos,
    backfill_votes,
    backfill_voting_power,
)
from cgov_sync.sync.context import SyncContext, build_context
from cgov_sync.sync.coordinator import SyncCoordinator, WorkBudget
from cgov_sync.types import JsonDict

T = TypeVar("T")

_BACKFILL_ROLES = {"drep": VoterRole.DREP, "spo": VoterRole.SPO}


def _parse_status(raw: str | None) -> ActionStatus | None:
    if raw is None:
        return None
    try:
        return ActionStatus(raw)
    except ValueError:
        raise InvalidParameterError(
            "status must be one of: " + ", ".join(status.value for status in ActionStatus)
        ) from None


def build_app(context: SyncContext) -> FastAPI:
    logger = get_logger("cgov_sync.api")

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await context.aclose()

    app = FastAPI(title=context.settings.service_name, version="0.1.0", lifespan=lifespan)
    coordinator = SyncCoordinator(context)

    async def bounded(work: Awaitable[T]) -> T:
        deadline = context.settings.request_deadline_seconds
        if deadline is None:
            return await work
        return await asyncio.wait_for(work, deadline)

    @app.exception_handler(SyncError)
    async def sync_error_handler(_: Request, exc: SyncError) -> JSONResponse:
        log = logger.warning if exc.http_status < 500 else logger.error
        log("request_failed", error=exc.reason, detail=exc.message)
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        problems = [
            {"loc": [str(part) for part in error["loc"]], "msg": error["msg"]}
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error": InvalidParameterError.reason, "detail": problems},
        )

    @app.exception_handler(TimeoutError)
    async def timeout_handler(_: Request, __: TimeoutError) -> JSONResponse:
        logger.warning("request_deadline_exceeded")
        return JSONResponse(
            status_code=504,
            content={"error": "timeout", "detail": "request deadline exceeded"},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(_: Request, exc: Exception) -> JSONResponse:
        logger.exception("request_crashed", error=type(exc).__name__)
        return JSONResponse(status_code=500, content={"error": "internal_error"})

    @app.get("/livez")
    async def livez() -> dict[str, str]:
        return {"status": "ok", "service": context.settings.service_name}

    @app.post("/api/governance/sync_from_slot")
    async def sync_from_slot(
        from_slot: int | None = None,
        to_slot: int | None = None,
        max_blocks: int | None = None,
    ) -> JsonDict:
        if max_blocks is None:
            max_blocks = context.settings.default_max_blocks
        changes = await bounded(
            context.slot_sync().sync_from_slot(from_slot, to_slot, max_blocks)
        )
        return {"data": changes.as_dict()}

    @app.post("/api/governance/sync")
    async def sync(
        force: bool = False,
        cooldown_ms: int | None = None,
        max_new: int | None = None,
        max_actions: int | None = None,
        max_votes: int | None = None,
        max_vp: int | None = None,
    ) -> JsonDict:
        defaults = WorkBudget.from_settings(context.settings)
        budget = WorkBudget(
            max_new_proposals=defaults.max_new_proposals if max_new is None else max_new,
            max_actions=defaults.max_actions if max_actions is None else max_actions,
            max_votes_per_action=(
                defaults.max_votes_per_action if max_votes is None else max_votes
            ),
            max_vp_lookups=defaults.max_vp_lookups if max_vp is None else max_vp,
        )
        outcome = await bounded(
            coordinator.run(force=force, cooldown_ms=cooldown_ms, budget=budget)
        )
        return {"data": outcome.as_dict()}

    @app.post("/api/governance/sync_missing_gov_actions")
    async def sync_missing_gov_actions() -> JsonDict:
        report = await bounded(coordinator.discover_missing_actions())
        return {"data": report.as_dict()}

    @app.post("/api/governance/sync_missing_dreps")
    async def sync_missing_dreps(
        limit: int = 200, batch_size: int = 50, dry_run: bool = False
    ) -> JsonDict:
        report = await bounded(
            backfill_dreps(context, limit=limit, batch_size=batch_size, dry_run=dry_run)
        )
        return {"data": report.as_dict()}

    @app.post("/api/governance/sync_missing_spos")
    async def sync_missing_spos(limit: int = 2000, dry_run: bool = False) -> JsonDict:
        report = await bounded(backfill_spos(context, limit=limit, dry_run=dry_run))
        return {"data": report.as_dict()}

    @app.post("/api/governance/sync_missing_voting_power")
    async def sync_missing_voting_power(
        role: str = "drep",
        limit: int = 200,
        voter_id: str | None = None,
        epoch_from: int | None = None,
        epoch_to: int | None = None,
        dry_run: bool = False,
    ) -> JsonDict:
        voter_role = _BACKFILL_ROLES.get(role.lower())
        if voter_role is None:
            raise InvalidParameterError("role must be one of: drep, spo")
        report = await bounded(
            backfill_voting_power(
                context,
                voter_role,
                limit=limit,
                voter_id=voter_id,
                epoch_from=epoch_from,
                epoch_to=epoch_to,
                dry_run=dry_run,
            )
        )
        return {"data": report.as_dict()}

    @app.post("/api/governance/sync_missing_votes")
    async def sync_missing_votes(
        proposal_id: str | None = None,
        offset: int = 0,
        limit: int = 200,
        epoch_from: int | None = None,
        epoch_to: int | None = None,
        dry_run: bool = False,
    ) -> JsonDict:
        report = await bounded(
            backfill_votes(
                context,
                proposal_id=proposal_id,
                offset=offset,
                limit=limit,
                epoch_from=epoch_from,
                epoch_to=epoch_to,
                dry_run=dry_run,
            )
        )
        return {"data": report.as_dict()}

    @app.post("/api/governance/sync_vote_statistics")
    async def sync_vote_statistics(
        proposal_id: str | None = None,
        governance_action_id: int | None = None,
        offset: int = 0,
        limit: int | None = None,
        dry_run: bool = False,
    ) -> JsonDict:
        report = await bounded(
            recompute_statistics(
                context.store,
                context.now(),
                proposal_id=proposal_id,
                action_id=governance_action_id,
                offset=offset,
                limit=limit,
                dry_run=dry_run,
            )
        )
        return {"data": report.as_dict()}

    @app.get("/api/governance/actions")
    async def list_actions(
        status: str | None = None,
        offset: int = Query(default=0, ge=0),
        limit: int = Query(default=50, ge=1, le=200),
    ) -> dict[str, Any]:
        action_status = _parse_status(status)
        total = await context.store.count_actions(status=action_status)
        actions = await context.store.list_actions(
            status=action_status, offset=offset, limit=limit
        )
        return {
            "total": total,
            "count": len(actions),
            "offset": offset,
            "limit": limit,
            "data": [action.as_dict() for action in actions],
        }

    @app.get("/api/governance/actions/{action_id}/statistics")
    async def action_statistics(action_id: int) -> JsonDict:
        if await context.store.get_action(action_id) is None:
            raise NotFoundError("unknown governance action", detail={"action_id": action_id})
        statistics = await context.store.get_statistics(action_id)
        if statistics is None:
            raise NotFoundError(
                "no statistics for governance action", detail={"action_id": action_id}
            )
        return {"data": statistics.as_dict()}

    return app


def default_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, settings.service_name)
    return build_app(build_context(settings))
