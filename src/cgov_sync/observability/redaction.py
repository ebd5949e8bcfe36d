"""Scrub credentials from structured log events.

Keys are matched case-insensitively on a substring basis, with ``-`` read as
``_`` so HTTP header names (``X-Api-Key``) match too. Free-text values are
also scanned, because upstream error details may echo a request line or an
``Authorization`` header.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "secret",
        "token",
        "api_key",
        "authorization",
        "password",
    }
)

REDACTED = "***REDACTED***"

_BEARER = re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/=-]+")
_QUERY_SECRET = re.compile(r"(?i)([?&](?:api_key|token|apikey)=)[^&\s]+")


def _is_sensitive_key(key: str) -> bool:
    normalized = key.lower().replace("-", "_")
    return any(sensitive in normalized for sensitive in SENSITIVE_KEYS)


def scrub_text(text: str) -> str:
    text = _BEARER.sub(f"Bearer {REDACTED}", text)
    return _QUERY_SECRET.sub(rf"\1{REDACTED}", text)


def redact_sensitive(data: Any) -> Any:
    if isinstance(data, Mapping):
        return {
            key: REDACTED if _is_sensitive_key(str(key)) else redact_sensitive(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [redact_sensitive(item) for item in data]
    if isinstance(data, str):
        return scrub_text(data)
    return data
