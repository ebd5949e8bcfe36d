from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from cgov_sync.config import AppSettings
from cgov_sync.errors import MalformedResponseError
from cgov_sync.koios.client import KoiosClient
from cgov_sync.koios.fetch import NO_RETRY
from cgov_sync.observability.logging import configure_logging


def _paged(rows: list[dict[str, Any]]):
    def handler(request: httpx.Request) -> httpx.Response:
        limit = int(request.url.params["limit"])
        offset = int(request.url.params["offset"])
        return httpx.Response(200, json=rows[offset : offset + limit])

    return handler


def test_pagination_walks_until_short_page(make_context, fake_koios) -> None:
    rows = [{"hash": f"b{slot}", "abs_slot": slot} for slot in range(5)]
    fake_koios.on("GET", "/blocks", _paged(rows))
    context = make_context(block_page_size=2)

    fetched = asyncio.run(context.client.blocks(0, max_rows=500))

    assert [row["abs_slot"] for row in fetched] == [0, 1, 2, 3, 4]
    offsets = [request.url.params["offset"] for request in fake_koios.calls("/blocks")]
    assert offsets == ["0", "2", "4"]


def test_pagination_stops_at_row_budget(make_context, fake_koios) -> None:
    rows = [{"hash": f"b{slot}", "abs_slot": slot} for slot in range(10)]
    fake_koios.on("GET", "/blocks", _paged(rows))
    context = make_context(block_page_size=4)

    fetched = asyncio.run(context.client.blocks(0, max_rows=6))

    assert len(fetched) == 6
    limits = [request.url.params["limit"] for request in fake_koios.calls("/blocks")]
    assert limits == ["4", "2"]


def test_slot_range_sends_both_filters(make_context, fake_koios) -> None:
    fake_koios.on("GET", "/blocks", [])
    context = make_context()

    asyncio.run(context.client.blocks(10, 20, max_rows=5))

    request = fake_koios.calls("/blocks")[0]
    assert request.url.params.get_list("abs_slot") == ["gte.10", "lte.20"]
    assert request.url.params["order"] == "abs_slot.asc"


def test_token_is_sent_as_bearer_and_api_key(make_context, fake_koios) -> None:
    fake_koios.on("GET", "/proposal_list", [])
    context = make_context()

    asyncio.run(context.client.proposal_list())

    request = fake_koios.calls("/proposal_list")[0]
    assert request.headers["authorization"] == "Bearer test-token"
    assert request.headers["x-api-key"] == "test-token"


def test_missing_token_is_logged_and_tolerated(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging("INFO")
    settings = AppSettings(_env_file=None, koios_base_url="https://koios.test", koios_api_key="")
    http = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[])),
        base_url="https://koios.test",
    )

    client = KoiosClient(settings, http=http, policy=NO_RETRY)
    rows = asyncio.run(client.proposal_list())

    assert rows == []
    assert "koios_token_missing" in capsys.readouterr().err


def test_non_array_response_is_malformed(make_context, fake_koios) -> None:
    fake_koios.on("GET", "/proposal_list", {"rows": []})
    context = make_context()

    with pytest.raises(MalformedResponseError):
        asyncio.run(context.client.proposal_list())


def test_non_json_body_is_malformed(make_context, fake_koios) -> None:
    fake_koios.on(
        "GET", "/proposal_list", lambda request: httpx.Response(200, text="<html>oops</html>")
    )
    context = make_context()

    with pytest.raises(MalformedResponseError):
        asyncio.run(context.client.proposal_list())


def test_tx_info_posts_hashes_with_governance_flags(make_context, fake_koios) -> None:
    fake_koios.on("POST", "/tx_info", [])
    context = make_context()

    asyncio.run(context.client.tx_info(["aa", "bb"]))

    body = fake_koios.calls("/tx_info")[0].read()
    assert b'"_tx_hashes":["aa","bb"]' in body.replace(b" ", b"")
    assert b'"_governance":true' in body.replace(b" ", b"")


def test_vote_list_filters_by_proposal_and_epoch(make_context, fake_koios) -> None:
    fake_koios.on("GET", "/vote_list", [])
    context = make_context()

    asyncio.run(context.client.vote_list("gov_action1x", epoch_from=500, epoch_to=510))

    params = fake_koios.calls("/vote_list")[0].url.params
    assert params["proposal_id"] == "eq.gov_action1x"
    assert params.get_list("epoch_no") == ["gte.500", "lte.510"]
    assert params["order"] == "block_time.asc"
    assert params["limit"] == "250"


def test_pool_list_spans_pages(make_context, fake_koios) -> None:
    pools = [{"pool_id_bech32": f"pool1{index}"} for index in range(7)]
    fake_koios.on("GET", "/pool_list", _paged(pools))
    context = make_context(koios_page_size=3)

    fetched = asyncio.run(context.client.pool_list())

    assert fetched == pools
    offsets = [request.url.params["offset"] for request in fake_koios.calls("/pool_list")]
    assert offsets == ["0", "3", "6"]


def test_proposal_votes_keep_filter_on_every_page(make_context, fake_koios) -> None:
    votes = [{"voter_id": f"drep{index}"} for index in range(4)]
    fake_koios.on("GET", "/proposal_votes", _paged(votes))
    context = make_context(koios_page_size=2)

    fetched = asyncio.run(context.client.proposal_votes("gov_action1x"))

    assert len(fetched) == 4
    requests = fake_koios.calls("/proposal_votes")
    assert len(requests) == 3
    assert {request.url.params["_proposal_id"] for request in requests} == {"gov_action1x"}


def test_block_txs_posts_same_body_for_every_page(make_context, fake_koios) -> None:
    txs = [{"block_hash": "a", "tx_hash": f"t{index}"} for index in range(5)]
    fake_koios.on("POST", "/block_txs", _paged(txs))
    context = make_context(koios_page_size=2)

    fetched = asyncio.run(context.client.block_txs(["a"]))

    assert [row["tx_hash"] for row in fetched] == ["t0", "t1", "t2", "t3", "t4"]
    requests = fake_koios.calls("/block_txs")
    assert [request.url.params["offset"] for request in requests] == ["0", "2", "4"]
    assert all(json.loads(request.content) == {"_block_hashes": ["a"]} for request in requests)
