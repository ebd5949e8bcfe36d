"""Per-role vote tallies and percentage math.

DRep and SPO tallies are weighted by ADA voting power; committee tallies are
one member, one vote. A percentage whose denominator is zero is ``None``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

from cgov_sync.domain.chain import VoteChoice, VoterRole

ZERO = Decimal(0)
HUNDRED = Decimal(100)


class TalliedVote(Protocol):
    @property
    def role(self) -> VoterRole: ...

    @property
    def choice(self) -> VoteChoice: ...

    @property
    def voting_power_ada(self) -> Decimal | None: ...


@dataclass(slots=True)
class VoteTally:
    role: VoterRole
    yes_count: int = 0
    no_count: int = 0
    abstain_count: int = 0
    yes_ada: Decimal = ZERO
    no_ada: Decimal = ZERO
    abstain_ada: Decimal = ZERO
    unresolved_count: int = 0

    @property
    def total_count(self) -> int:
        return self.yes_count + self.no_count + self.abstain_count

    def add(self, choice: VoteChoice, power: Decimal | None = None) -> None:
        if self.role.is_weighted and power is None:
            self.unresolved_count += 1
        ada = power if power is not None and self.role.is_weighted else ZERO
        if choice is VoteChoice.YES:
            self.yes_count += 1
            self.yes_ada += ada
        elif choice is VoteChoice.NO:
            self.no_count += 1
            self.no_ada += ada
        else:
            self.abstain_count += 1
            self.abstain_ada += ada


def aggregate(votes: Iterable[TalliedVote], role: VoterRole) -> VoteTally:
    tally = VoteTally(role=role)
    for vote in votes:
        if vote.role is role:
            tally.add(vote.choice, vote.voting_power_ada)
    return tally


@dataclass(slots=True, frozen=True)
class VotePercentages:
    yes_percent: Decimal | None
    no_percent: Decimal | None
    abstain_percent: Decimal | None


def to_percentages(tally: VoteTally) -> VotePercentages:
    if tally.role.is_weighted:
        yes, no, abstain = tally.yes_ada, tally.no_ada, tally.abstain_ada
    else:
        yes, no, abstain = (
            Decimal(tally.yes_count),
            Decimal(tally.no_count),
            Decimal(tally.abstain_count),
        )

    decided = yes + no
    if decided > 0:
        yes_percent: Decimal | None = yes * HUNDRED / decided
        no_percent: Decimal | None = HUNDRED - yes_percent
    else:
        yes_percent = no_percent = None

    participating = decided + abstain
    abstain_percent = abstain * HUNDRED / participating if participating > 0 else None
    return VotePercentages(yes_percent, no_percent, abstain_percent)


@dataclass(slots=True, frozen=True)
class AbstainEstimate:
    """An abstain figure and whether it was observed or inferred."""

    value: Decimal
    observed: bool

    @property
    def derived(self) -> bool:
        return not self.observed


def _total_from_share(value: Decimal | None, percent: Decimal | None) -> Decimal | None:
    if value is None or percent is None or percent <= 0:
        return None
    return value / (percent / HUNDRED)


def derive_cc_abstain_count(
    yes_count: int | None,
    no_count: int | None,
    yes_percent: Decimal | None,
    no_percent: Decimal | None,
    abstain_percent: Decimal | None,
) -> AbstainEstimate | None:
    """Infer a committee abstain count from yes/no counts and their shares.

    Best-effort fallback for when abstain rows were not observed: the member
    total is ``known / (nonAbstain% / 100)``.
    """

    if abstain_percent is None:
        return None
    if abstain_percent <= 0:
        return AbstainEstimate(value=ZERO, observed=False)
    known = Decimal((yes_count or 0) + (no_count or 0))
    non_abstain = (yes_percent or ZERO) + (no_percent or ZERO)
    if known == 0 or non_abstain <= 0:
        return None
    total = known / (non_abstain / HUNDRED)
    abstain = (total - known).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return AbstainEstimate(value=max(ZERO, abstain), observed=False)


def derive_abstain_value(
    yes_value: Decimal | None,
    yes_percent: Decimal | None,
    no_value: Decimal | None,
    no_percent: Decimal | None,
    abstain_percent: Decimal | None,
) -> AbstainEstimate | None:
    if abstain_percent is None:
        return None
    if abstain_percent <= 0:
        return AbstainEstimate(value=ZERO, observed=False)
    total = _total_from_share(yes_value, yes_percent)
    if total is None:
        total = _total_from_share(no_value, no_percent)
    if total is None:
        return None
    return AbstainEstimate(value=abstain_percent / HUNDRED * total, observed=False)


def observed_abstain(tally: VoteTally) -> AbstainEstimate:
    value = tally.abstain_ada if tally.role.is_weighted else Decimal(tally.abstain_count)
    return AbstainEstimate(value=value, observed=True)
