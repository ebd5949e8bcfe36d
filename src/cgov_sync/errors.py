from __future__ import annotations

from typing import Any


class SyncError(Exception):
    """Base error for the sync engine; carries a machine-readable reason."""

    reason = "internal_error"
    http_status = 500

    def __init__(self, message: str, *, detail: Any = None) -> None:
        self.message = message
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.reason, "detail": self.message}
        if self.detail is not None:
            payload["context"] = self.detail
        return payload


class InvalidParameterError(SyncError):
    reason = "invalid_parameters"
    http_status = 400


class UpstreamError(SyncError):
    reason = "upstream_error"
    http_status = 502
    retryable = False


class UpstreamStatusError(UpstreamError):
    def __init__(self, status_code: int, url: str, *, body: str | None = None) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(
            f"upstream responded {status_code} for {url}",
            detail={"status": status_code, "body": body} if body else {"status": status_code},
        )

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status_code == 429 or 500 <= self.status_code < 600


class UpstreamTimeoutError(UpstreamError):
    reason = "upstream_timeout"
    http_status = 504
    retryable = True


class MalformedResponseError(UpstreamError):
    reason = "malformed_response"


class PersistenceError(SyncError):
    reason = "persistence_error"


class NotFoundError(SyncError):
    reason = "not_found"
    http_status = 404
