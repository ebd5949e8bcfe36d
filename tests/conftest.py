from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import pytest
import structlog

from cgov_sync.config import AppSettings
from cgov_sync.domain.epochs import EpochClock
from cgov_sync.koios.fetch import NO_RETRY, RetryPolicy
from cgov_sync.storage.memory import MemoryGovernanceStore
from cgov_sync.sync.context import SyncContext, build_context

KOIOS_URL = "https://koios.test"

# epoch 540 on mainnet time constants
EPOCH_540_START = EpochClock().epoch_start(540)


class FakeKoios:
    """Route table behind ``httpx.MockTransport``.

    A route is either a JSON payload served for every call or a callable
    receiving the request. Every request is recorded.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, payload: Any) -> None:
        self.routes[(method.upper(), path)] = payload

    def calls(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "no route"})
        if callable(route):
            return route(request)
        return httpx.Response(200, json=route)


class FixedClock:
    def __init__(self, moment: datetime) -> None:
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment

    def advance(self, **delta: float) -> None:
        self.moment = self.moment + timedelta(**delta)


async def no_sleep(_: float) -> None:
    return None


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        _env_file=None,
        koios_base_url=KOIOS_URL,
        koios_api_key="test-token",
    )


@pytest.fixture
def fake_koios() -> FakeKoios:
    return FakeKoios()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime.fromtimestamp(EPOCH_540_START + 3600, tz=UTC))


@pytest.fixture
def store() -> MemoryGovernanceStore:
    return MemoryGovernanceStore()


@pytest.fixture
def make_context(
    settings: AppSettings,
    fake_koios: FakeKoios,
    clock: FixedClock,
    store: MemoryGovernanceStore,
) -> Callable[..., SyncContext]:
    def _make(policy: RetryPolicy = NO_RETRY, **overrides: Any) -> SyncContext:
        active = settings.model_copy(update=overrides) if overrides else settings
        http = httpx.AsyncClient(
            transport=httpx.MockTransport(fake_koios), base_url=active.koios_base_url
        )
        return build_context(
            active, store=store, http=http, policy=policy, sleep=no_sleep, now=clock
        )

    return _make


@pytest.fixture
def proposal_row() -> Callable[..., dict[str, Any]]:
    def _row(proposal_id: str, **fields: Any) -> dict[str, Any]:
        row: dict[str, Any] = {
            "proposal_id": proposal_id,
            "proposal_tx_hash": f"tx-{proposal_id}",
            "proposal_index": 0,
            "proposal_type": "InfoAction",
            "block_time": EPOCH_540_START + 100,
            "expiration": 546,
        }
        row.update(fields)
        return row

    return _row


@pytest.fixture
def vote_row() -> Callable[..., dict[str, Any]]:
    def _row(
        voter_id: str, vote: str = "Yes", role: str = "DRep", **fields: Any
    ) -> dict[str, Any]:
        row: dict[str, Any] = {
            "voter_role": role,
            "voter_id": voter_id,
            "vote": vote,
            "block_time": EPOCH_540_START + 200,
            "epoch_no": 540,
            "vote_tx_hash": f"vote-{voter_id}",
        }
        row.update(fields)
        return row

    return _row


@pytest.fixture
def tx_row() -> Callable[..., dict[str, Any]]:
    def _row(tx_hash: str, block_hash: str, abs_slot: int, **fields: Any) -> dict[str, Any]:
        row: dict[str, Any] = {
            "tx_hash": tx_hash,
            "block_hash": block_hash,
            "block_height": abs_slot // 20,
            "epoch_no": 540,
            "abs_slot": abs_slot,
            "tx_timestamp": EPOCH_540_START + abs_slot,
            "certificates": [],
            "voting_procedures": [],
            "proposal_procedures": [],
        }
        row.update(fields)
        return row

    return _row
