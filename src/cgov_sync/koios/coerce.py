"""Tolerant coercion of loosely typed upstream JSON values."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

LOVELACE_PER_ADA = Decimal(1_000_000)


def as_str(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip(), 10)
        except ValueError:
            return None
    return None


def as_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float, str)):
        try:
            parsed = Decimal(str(value).strip())
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None
    return None


def as_bool(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None


def lovelace_to_ada(lovelace: Decimal) -> Decimal:
    return lovelace / LOVELACE_PER_ADA
