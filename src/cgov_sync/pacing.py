from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Sequence
from typing import TypeVar

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


async def paced(
    items: Iterable[T], delay: float, sleep: Sleep = asyncio.sleep
) -> AsyncIterator[T]:
    """Yield items one at a time, sleeping ``delay`` seconds after each.

    The consumer's work for an item completes before the delay starts, so at
    most one upstream call is outstanding.
    """

    for item in items:
        yield item
        if delay > 0:
            await sleep(delay)


def batched(items: Sequence[T], size: int) -> list[Sequence[T]]:
    if size <= 0:
        raise ValueError("batch size must be positive")
    return [items[start : start + size] for start in range(0, len(items), size)]
