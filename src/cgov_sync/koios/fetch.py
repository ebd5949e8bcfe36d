"""Rate-limited fetch with retry.

One outbound request is one :class:`RequestSpec`. ``fetch_with_retry`` sends
it with the timeout of its endpoint class and retries only classified
retryable outcomes (HTTP 429, HTTP 5xx, timeouts) with capped exponential
backoff plus bounded jitter. Anything else propagates on the first attempt.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import backoff
import httpx

from cgov_sync.config import AppSettings
from cgov_sync.errors import UpstreamError, UpstreamStatusError, UpstreamTimeoutError
from cgov_sync.observability.logging import get_logger


class EndpointClass(StrEnum):
    METADATA = "metadata"
    DEFAULT = "default"
    BULK = "bulk"


@dataclass(slots=True, frozen=True)
class EndpointTimeouts:
    metadata: float = 20.0
    default: float = 30.0
    bulk: float = 60.0

    @classmethod
    def from_settings(cls, settings: AppSettings) -> EndpointTimeouts:
        return cls(
            metadata=settings.metadata_timeout_seconds,
            default=settings.default_timeout_seconds,
            bulk=settings.bulk_timeout_seconds,
        )

    def for_class(self, endpoint_class: EndpointClass) -> float:
        return {
            EndpointClass.METADATA: self.metadata,
            EndpointClass.DEFAULT: self.default,
            EndpointClass.BULK: self.bulk,
        }[endpoint_class]


def is_retryable(exc: Exception) -> bool:
    return isinstance(exc, UpstreamError) and bool(exc.retryable)


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    max_retries: int = 5
    base_delay: float = 0.75
    max_delay: float = 10.0
    jitter: float = 0.2
    retryable: Callable[[Exception], bool] = field(default=is_retryable)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.base_delay < 0 or self.max_delay < 0 or self.jitter < 0:
            raise ValueError("retry delays must be non-negative")

    @classmethod
    def from_settings(cls, settings: AppSettings) -> RetryPolicy:
        return cls(
            max_retries=settings.retry_max_retries,
            base_delay=settings.retry_base_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
            jitter=settings.retry_jitter_seconds,
        )

    def add_jitter(self, value: float) -> float:
        if self.jitter <= 0:
            return value
        return value + random.uniform(0, self.jitter)


NO_RETRY = RetryPolicy(max_retries=0, base_delay=0.0, max_delay=0.0, jitter=0.0)


@dataclass(slots=True, frozen=True)
class RequestSpec:
    method: str
    path: str
    params: Sequence[tuple[str, str]] = ()
    json: Any = None
    endpoint_class: EndpointClass = EndpointClass.DEFAULT
    headers: dict[str, str] = field(default_factory=dict)


def _body_snippet(response: httpx.Response) -> str | None:
    try:
        text = response.text
    except (UnicodeDecodeError, httpx.ResponseNotRead):
        return None
    return text[:500] or None


async def _send_once(
    client: httpx.AsyncClient,
    request: RequestSpec,
    timeout: float,
) -> httpx.Response:
    try:
        response = await client.request(
            request.method,
            request.path,
            params=list(request.params) or None,
            json=request.json,
            headers=request.headers or None,
            timeout=timeout,
        )
    except httpx.TimeoutException as exc:
        raise UpstreamTimeoutError(
            f"upstream request timed out after {timeout:g}s: {request.method} {request.path}"
        ) from exc
    except httpx.TransportError as exc:
        raise UpstreamError(f"upstream transport error: {exc}") from exc

    if response.is_error:
        raise UpstreamStatusError(
            response.status_code,
            str(response.request.url),
            body=_body_snippet(response),
        )
    return response


def _log_backoff(details: dict[str, Any]) -> None:
    exc = details.get("exception")
    get_logger("cgov_sync.fetch").warning(
        "upstream_retry",
        attempt=details.get("tries"),
        wait_seconds=round(float(details.get("wait") or 0.0), 3),
        error=str(exc) if exc is not None else None,
    )


def _log_giveup(details: dict[str, Any]) -> None:
    exc = details.get("exception")
    get_logger("cgov_sync.fetch").error(
        "upstream_request_failed",
        attempts=details.get("tries"),
        error=str(exc) if exc is not None else None,
    )


async def fetch_with_retry(
    client: httpx.AsyncClient,
    request: RequestSpec,
    policy: RetryPolicy,
    timeouts: EndpointTimeouts | None = None,
) -> httpx.Response:
    """Send ``request``; on exhaustion the last error is raised."""

    timeout = (timeouts or EndpointTimeouts()).for_class(request.endpoint_class)

    @backoff.on_exception(
        backoff.expo,
        UpstreamError,
        max_tries=policy.max_retries + 1,
        giveup=lambda exc: not policy.retryable(exc),
        jitter=policy.add_jitter,
        on_backoff=_log_backoff,
        on_giveup=_log_giveup,
        base=2,
        factor=policy.base_delay,
        max_value=policy.max_delay,
    )
    async def _attempt() -> httpx.Response:
        return await _send_once(client, request, timeout)

    return await _attempt()
