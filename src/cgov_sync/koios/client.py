"""Typed access to the Koios indexer.

Every call goes through :func:`fetch_with_retry`; helpers return lists of
JSON objects and raise :class:`MalformedResponseError` for any other shape.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from typing import Any

import httpx

from cgov_sync.config import AppSettings
from cgov_sync.errors import MalformedResponseError
from cgov_sync.koios.fetch import (
    EndpointClass,
    EndpointTimeouts,
    RequestSpec,
    RetryPolicy,
    fetch_with_retry,
)
from cgov_sync.observability.logging import get_logger
from cgov_sync.types import JsonDict

Params = Sequence[tuple[str, str]]


def _expect_rows(payload: Any, path: str) -> list[JsonDict]:
    if not isinstance(payload, list):
        raise MalformedResponseError(
            f"expected a JSON array from {path}",
            detail={"received": type(payload).__name__},
        )
    for row in payload:
        if not isinstance(row, dict):
            raise MalformedResponseError(
                f"expected JSON objects in array from {path}",
                detail={"received": type(row).__name__},
            )
    return payload


class KoiosClient:
    """Koios REST client bound to one ``httpx.AsyncClient``.

    The HTTP client is created from settings unless one is injected; an
    injected client is left open on :meth:`aclose`.
    """

    def __init__(
        self,
        settings: AppSettings,
        http: httpx.AsyncClient | None = None,
        policy: RetryPolicy | None = None,
    ) -> None:
        self._settings = settings
        self._policy = policy or RetryPolicy.from_settings(settings)
        self._timeouts = EndpointTimeouts.from_settings(settings)
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(base_url=settings.koios_base_url.rstrip("/"))
        self._headers = self._build_headers()

    def _build_headers(self) -> dict[str, str]:
        headers = {"accept": "application/json"}
        token = self._settings.koios_api_key.strip()
        if token:
            headers["Authorization"] = f"Bearer {token}"
            headers["X-API-Key"] = token
        else:
            get_logger("cgov_sync.koios").warning(
                "koios_token_missing",
                base_url=self._settings.koios_base_url,
                hint="requests are unauthenticated and may be rate limited",
            )
        return headers

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> KoiosClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    async def _request(self, request: RequestSpec) -> list[JsonDict]:
        response = await fetch_with_retry(self._http, request, self._policy, self._timeouts)
        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MalformedResponseError(
                f"non-JSON body from {request.path}",
                detail={"status": response.status_code},
            ) from exc
        return _expect_rows(payload, request.path)

    async def get_json(
        self,
        path: str,
        params: Params = (),
        *,
        endpoint_class: EndpointClass = EndpointClass.DEFAULT,
    ) -> list[JsonDict]:
        return await self._request(
            RequestSpec(
                method="GET",
                path=path,
                params=params,
                endpoint_class=endpoint_class,
                headers=self._headers,
            )
        )

    async def post_json(
        self,
        path: str,
        body: JsonDict,
        params: Params = (),
        *,
        endpoint_class: EndpointClass = EndpointClass.DEFAULT,
    ) -> list[JsonDict]:
        return await self._request(
            RequestSpec(
                method="POST",
                path=path,
                params=params,
                json=body,
                endpoint_class=endpoint_class,
                headers={**self._headers, "content-type": "application/json"},
            )
        )

    async def paginate(
        self,
        path: str,
        params: Params = (),
        *,
        page_size: int | None = None,
        max_rows: int | None = None,
        body: JsonDict | None = None,
        endpoint_class: EndpointClass = EndpointClass.DEFAULT,
    ) -> list[JsonDict]:
        """Walk ``limit``/``offset`` pages until a short page or ``max_rows``.

        With ``body`` every page is a POST of the same body; paging stays in
        the query string.
        """

        if page_size is None:
            page_size = self._settings.koios_page_size
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        rows: list[JsonDict] = []
        offset = 0
        while max_rows is None or len(rows) < max_rows:
            limit = page_size if max_rows is None else min(page_size, max_rows - len(rows))
            paged = [*params, ("limit", str(limit)), ("offset", str(offset))]
            if body is None:
                page = await self.get_json(path, paged, endpoint_class=endpoint_class)
            else:
                page = await self.post_json(path, body, paged, endpoint_class=endpoint_class)
            rows.extend(page)
            if len(page) < limit:
                break
            offset += len(page)
        return rows

    async def blocks(
        self,
        from_slot: int,
        to_slot: int | None = None,
        *,
        max_rows: int,
    ) -> list[JsonDict]:
        params: list[tuple[str, str]] = [("abs_slot", f"gte.{from_slot}")]
        if to_slot is not None:
            params.append(("abs_slot", f"lte.{to_slot}"))
        params.append(("order", "abs_slot.asc"))
        return await self.paginate(
            "/blocks",
            params,
            page_size=self._settings.block_page_size,
            max_rows=max_rows,
        )

    async def block_txs(self, block_hashes: Iterable[str]) -> list[JsonDict]:
        return await self.paginate("/block_txs", body={"_block_hashes": list(block_hashes)})

    async def tx_info(self, tx_hashes: Iterable[str]) -> list[JsonDict]:
        return await self.post_json(
            "/tx_info",
            {"_tx_hashes": list(tx_hashes), "_certs": True, "_governance": True},
            endpoint_class=EndpointClass.BULK,
        )

    async def proposal_list(self) -> list[JsonDict]:
        return await self.paginate("/proposal_list")

    async def proposal_votes(self, proposal_id: str) -> list[JsonDict]:
        return await self.paginate("/proposal_votes", [("_proposal_id", proposal_id)])

    async def drep_info(self, drep_ids: Iterable[str]) -> list[JsonDict]:
        return await self.post_json(
            "/drep_info",
            {"_drep_ids": list(drep_ids)},
            endpoint_class=EndpointClass.METADATA,
        )

    async def pool_list(self) -> list[JsonDict]:
        return await self.paginate("/pool_list", endpoint_class=EndpointClass.METADATA)

    async def drep_voting_power_history(self, drep_id: str, epoch_no: int) -> list[JsonDict]:
        return await self.get_json(
            "/drep_voting_power_history",
            [("_drep_id", drep_id), ("_epoch_no", str(epoch_no))],
            endpoint_class=EndpointClass.METADATA,
        )

    async def pool_voting_power_history(self, pool_id: str, epoch_no: int) -> list[JsonDict]:
        return await self.get_json(
            "/pool_voting_power_history",
            [("_pool_bech32", pool_id), ("_epoch_no", str(epoch_no))],
            endpoint_class=EndpointClass.METADATA,
        )

    async def vote_list(
        self,
        proposal_id: str,
        *,
        epoch_from: int | None = None,
        epoch_to: int | None = None,
        page_size: int = 250,
        max_pages: int = 40,
    ) -> list[JsonDict]:
        params: list[tuple[str, str]] = [("proposal_id", f"eq.{proposal_id}")]
        if epoch_from is not None:
            params.append(("epoch_no", f"gte.{epoch_from}"))
        if epoch_to is not None:
            params.append(("epoch_no", f"lte.{epoch_to}"))
        params.append(("order", "block_time.asc"))
        return await self.paginate(
            "/vote_list",
            params,
            page_size=page_size,
            max_rows=page_size * max_pages,
        )
