"""Koios indexer access: retrying fetch and typed endpoint helpers."""

from cgov_sync.koios.client import KoiosClient
from cgov_sync.koios.fetch import (
    NO_RETRY,
    EndpointClass,
    EndpointTimeouts,
    RequestSpec,
    RetryPolicy,
    fetch_with_retry,
)

__all__ = [
    "EndpointClass",
    "EndpointTimeouts",
    "KoiosClient",
    "NO_RETRY",
    "RequestSpec",
    "RetryPolicy",
    "fetch_with_retry",
]
