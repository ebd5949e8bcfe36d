"""Epoch-scoped voting power lookups with an in-process cache."""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, NamedTuple

from cgov_sync.domain.chain import VoterRole
from cgov_sync.errors import SyncError
from cgov_sync.koios.client import KoiosClient
from cgov_sync.koios.coerce import as_decimal, lovelace_to_ada
from cgov_sync.observability.logging import get_logger

ZERO = Decimal(0)


class PowerKey(NamedTuple):
    identity_id: str
    epoch_no: int


class VotingPowerCache:
    """Memoized (identity, epoch) -> ADA; entries are never invalidated.

    Power for a finished epoch does not change, so one cache may live as long
    as the process. Only resolved values are stored.
    """

    def __init__(self) -> None:
        self._entries: dict[PowerKey, Decimal] = {}

    def get(self, key: PowerKey) -> Decimal | None:
        return self._entries.get(key)

    def put(self, key: PowerKey, value: Decimal) -> None:
        self._entries[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def extract_ada(row: Mapping[str, Any]) -> Decimal | None:
    """ADA from a history row: explicit ADA field first, then lovelace."""

    ada = as_decimal(row.get("voting_power_ada"))
    if ada is not None:
        return ada
    lovelace = as_decimal(row.get("voting_power_lovelace"))
    if lovelace is None:
        lovelace = as_decimal(row.get("voting_power"))
    if lovelace is None:
        return None
    return lovelace_to_ada(lovelace)


class VotingPowerResolver:
    def __init__(self, client: KoiosClient, cache: VotingPowerCache | None = None) -> None:
        self._client = client
        self.cache = cache if cache is not None else VotingPowerCache()
        self.lookups = 0

    async def resolve(
        self,
        identity_id: str,
        epoch_no: int,
        role: VoterRole = VoterRole.DREP,
    ) -> Decimal | None:
        """Voting power in ADA, ``Decimal(0)`` for no history row, ``None`` on failure.

        A zero-row response is a known zero, not a miss; callers must keep
        the two apart.
        """

        if not role.is_weighted:
            raise ValueError("constitutional committee votes are unweighted")

        key = PowerKey(identity_id, epoch_no)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        logger = get_logger("cgov_sync.voting_power")
        self.lookups += 1
        try:
            if role is VoterRole.DREP:
                rows = await self._client.drep_voting_power_history(identity_id, epoch_no)
            else:
                rows = await self._client.pool_voting_power_history(identity_id, epoch_no)
        except SyncError as exc:
            logger.warning(
                "voting_power_lookup_failed",
                identity_id=identity_id,
                epoch_no=epoch_no,
                role=role.value,
                error=exc.reason,
                detail=exc.message,
            )
            return None

        if not rows:
            value: Decimal | None = ZERO
        else:
            value = extract_ada(rows[0])
        if value is None:
            logger.warning(
                "voting_power_unrecognized_row",
                identity_id=identity_id,
                epoch_no=epoch_no,
                role=role.value,
            )
            return None

        self.cache.put(key, value)
        return value
