from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime

MAINNET_GENESIS_UNIX = 1_506_203_091
MAINNET_EPOCH_SECONDS = 432_000


@dataclass(slots=True, frozen=True)
class EpochClock:
    genesis_unix: int = MAINNET_GENESIS_UNIX
    epoch_length_seconds: int = MAINNET_EPOCH_SECONDS

    def __post_init__(self) -> None:
        if self.epoch_length_seconds <= 0:
            raise ValueError("epoch_length_seconds must be positive")

    def epoch_of(self, unix_seconds: float) -> int:
        return math.floor((unix_seconds - self.genesis_unix) / self.epoch_length_seconds)

    def epoch_start(self, epoch_no: int) -> int:
        return self.genesis_unix + epoch_no * self.epoch_length_seconds

    def current_epoch(self, now: datetime | None = None) -> int:
        moment = now if now is not None else datetime.now(UTC)
        return self.epoch_of(moment.timestamp())


MAINNET = EpochClock()
