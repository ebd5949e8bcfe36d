"""Persisted per-action vote statistics.

Statistics are always rebuilt from the persisted per-voter rows of an action,
never from the delta of a single run.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from cgov_sync.aggregation.tally import TalliedVote, VoteTally, aggregate, to_percentages
from cgov_sync.domain.chain import VoterRole
from cgov_sync.domain.eligibility import eligible_roles
from cgov_sync.domain.records import GovernanceActionRecord
from cgov_sync.errors import InvalidParameterError
from cgov_sync.storage.base import GovernanceStore
from cgov_sync.types import JsonDict

_ROLE_ORDER = (VoterRole.DREP, VoterRole.SPO, VoterRole.CC)


def _dec(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


@dataclass(slots=True, frozen=True)
class RoleStatistics:
    role: VoterRole
    eligible: bool
    yes_count: int = 0
    no_count: int = 0
    abstain_count: int = 0
    unresolved_count: int = 0
    yes_ada: Decimal | None = None
    no_ada: Decimal | None = None
    abstain_ada: Decimal | None = None
    yes_percent: Decimal | None = None
    no_percent: Decimal | None = None
    abstain_percent: Decimal | None = None

    @classmethod
    def from_tally(cls, tally: VoteTally, *, eligible: bool) -> RoleStatistics:
        percentages = to_percentages(tally)
        weighted = tally.role.is_weighted and tally.total_count > 0
        return cls(
            role=tally.role,
            eligible=eligible,
            yes_count=tally.yes_count,
            no_count=tally.no_count,
            abstain_count=tally.abstain_count,
            unresolved_count=tally.unresolved_count,
            yes_ada=tally.yes_ada if weighted else None,
            no_ada=tally.no_ada if weighted else None,
            abstain_ada=tally.abstain_ada if weighted else None,
            yes_percent=percentages.yes_percent,
            no_percent=percentages.no_percent,
            abstain_percent=percentages.abstain_percent,
        )

    def as_dict(self) -> JsonDict:
        payload: JsonDict = {
            "eligible": self.eligible,
            "yes_count": self.yes_count,
            "no_count": self.no_count,
            "abstain_count": self.abstain_count,
            "yes_percent": _dec(self.yes_percent),
            "no_percent": _dec(self.no_percent),
            "abstain_percent": _dec(self.abstain_percent),
        }
        if self.role.is_weighted:
            payload.update(
                {
                    "yes_ada": _dec(self.yes_ada),
                    "no_ada": _dec(self.no_ada),
                    "abstain_ada": _dec(self.abstain_ada),
                    "unresolved_count": self.unresolved_count,
                }
            )
        return payload


@dataclass(slots=True, frozen=True)
class VoteStatistics:
    action_id: int
    drep: RoleStatistics
    spo: RoleStatistics
    cc: RoleStatistics
    last_updated: datetime
    eligible_roles: tuple[VoterRole, ...] = ()

    @property
    def total_yes(self) -> int:
        return self.drep.yes_count + self.spo.yes_count + self.cc.yes_count

    @property
    def total_no(self) -> int:
        return self.drep.no_count + self.spo.no_count + self.cc.no_count

    @property
    def total_abstain(self) -> int:
        return self.drep.abstain_count + self.spo.abstain_count + self.cc.abstain_count

    def same_figures(self, other: VoteStatistics | None) -> bool:
        return (
            other is not None
            and self.drep == other.drep
            and self.spo == other.spo
            and self.cc == other.cc
        )

    def as_dict(self) -> JsonDict:
        return {
            "governance_action_id": self.action_id,
            "drep": self.drep.as_dict(),
            "spo": self.spo.as_dict(),
            "cc": self.cc.as_dict(),
            "total_yes": self.total_yes,
            "total_no": self.total_no,
            "total_abstain": self.total_abstain,
            "eligible_roles": [role.value for role in self.eligible_roles],
            "last_updated": self.last_updated.isoformat(),
        }

    def preview(self) -> JsonDict:
        return {
            "governance_action_id": self.action_id,
            "drep_yes_ada": _dec(self.drep.yes_ada),
            "drep_no_ada": _dec(self.drep.no_ada),
            "spo_yes_ada": _dec(self.spo.yes_ada),
            "spo_no_ada": _dec(self.spo.no_ada),
            "total_yes": self.total_yes,
            "total_no": self.total_no,
            "total_abstain": self.total_abstain,
        }


def build_statistics(
    action: GovernanceActionRecord,
    votes: Iterable[TalliedVote],
    now: datetime,
) -> VoteStatistics:
    rows = list(votes)
    roles = eligible_roles(action.type)
    by_role = {
        role: RoleStatistics.from_tally(aggregate(rows, role), eligible=role in roles)
        for role in _ROLE_ORDER
    }
    return VoteStatistics(
        action_id=action.id,
        drep=by_role[VoterRole.DREP],
        spo=by_role[VoterRole.SPO],
        cc=by_role[VoterRole.CC],
        last_updated=now,
        eligible_roles=tuple(role for role in _ROLE_ORDER if role in roles),
    )


async def refresh_action_statistics(
    store: GovernanceStore, action: GovernanceActionRecord, now: datetime
) -> VoteStatistics:
    statistics = build_statistics(action, await store.list_votes(action.id), now)
    await store.upsert_statistics(statistics)
    return statistics


@dataclass(slots=True)
class RecomputeReport:
    processed_actions: int = 0
    updated_statistics: int = 0
    dry_run: bool = False
    preview: list[JsonDict] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "processed_actions": self.processed_actions,
            "updated_statistics": self.updated_statistics,
            "dry_run": self.dry_run,
        }
        if self.dry_run:
            payload["preview"] = self.preview
        return payload


async def recompute_statistics(
    store: GovernanceStore,
    now: datetime,
    *,
    proposal_id: str | None = None,
    action_id: int | None = None,
    offset: int = 0,
    limit: int | None = None,
    dry_run: bool = False,
) -> RecomputeReport:
    """Re-aggregate persisted votes for the scoped actions (all when unscoped)."""

    if offset < 0:
        raise InvalidParameterError("offset must be non-negative")
    if limit is not None and not 1 <= limit <= 500:
        raise InvalidParameterError("limit must be between 1 and 500")

    actions = await store.list_actions(
        proposal_id=proposal_id, action_id=action_id, offset=offset, limit=limit
    )
    report = RecomputeReport(processed_actions=len(actions), dry_run=dry_run)
    for action in actions:
        statistics = build_statistics(action, await store.list_votes(action.id), now)
        if dry_run:
            report.preview.append(statistics.preview())
            continue
        await store.upsert_statistics(statistics)
        report.updated_statistics += 1
    return report
