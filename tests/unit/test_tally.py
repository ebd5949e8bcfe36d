from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from cgov_sync.aggregation.tally import (
    VoteTally,
    aggregate,
    derive_abstain_value,
    derive_cc_abstain_count,
    observed_abstain,
    to_percentages,
)
from cgov_sync.domain.chain import VoteChoice, VoterRole


@dataclass(frozen=True)
class Vote:
    role: VoterRole
    choice: VoteChoice
    voting_power_ada: Decimal | None = None


def test_weighted_percentages_exclude_abstain_from_yes_no() -> None:
    votes = [
        Vote(VoterRole.DREP, VoteChoice.YES, Decimal(600)),
        Vote(VoterRole.DREP, VoteChoice.NO, Decimal(400)),
        Vote(VoterRole.DREP, VoteChoice.ABSTAIN, Decimal(250)),
        Vote(VoterRole.SPO, VoteChoice.NO, Decimal(999)),
    ]

    percentages = to_percentages(aggregate(votes, VoterRole.DREP))

    assert percentages.yes_percent == Decimal(60)
    assert percentages.no_percent == Decimal(40)
    assert percentages.abstain_percent == Decimal(20)


def test_yes_and_no_sum_to_one_hundred() -> None:
    tally = VoteTally(role=VoterRole.SPO, yes_count=1, no_count=2)
    tally.yes_ada = Decimal(1)
    tally.no_ada = Decimal(2)

    percentages = to_percentages(tally)

    assert percentages.yes_percent is not None and percentages.no_percent is not None
    assert percentages.yes_percent + percentages.no_percent == Decimal(100)


def test_zero_total_yields_none_not_zero() -> None:
    percentages = to_percentages(VoteTally(role=VoterRole.DREP))

    assert percentages.yes_percent is None
    assert percentages.no_percent is None
    assert percentages.abstain_percent is None


def test_committee_tally_counts_members() -> None:
    votes = [Vote(VoterRole.CC, VoteChoice.YES)] * 4 + [Vote(VoterRole.CC, VoteChoice.NO)] * 3

    tally = aggregate(votes, VoterRole.CC)
    percentages = to_percentages(tally)

    assert (tally.yes_count, tally.no_count, tally.unresolved_count) == (4, 3, 0)
    assert percentages.yes_percent is not None
    assert round(percentages.yes_percent, 1) == Decimal("57.1")


def test_unresolved_power_is_counted_separately() -> None:
    votes = [
        Vote(VoterRole.DREP, VoteChoice.YES, None),
        Vote(VoterRole.DREP, VoteChoice.YES, Decimal(5)),
    ]

    tally = aggregate(votes, VoterRole.DREP)

    assert tally.yes_count == 2
    assert tally.yes_ada == Decimal(5)
    assert tally.unresolved_count == 1


def test_cc_abstain_is_zero_when_yes_and_no_cover_everything() -> None:
    estimate = derive_cc_abstain_count(4, 3, Decimal("57.1"), Decimal("42.9"), Decimal(5))

    assert estimate is not None
    assert estimate.value == Decimal(0)
    assert estimate.derived is True


def test_cc_abstain_derived_from_shares() -> None:
    estimate = derive_cc_abstain_count(4, 3, Decimal(40), Decimal(30), Decimal(30))

    assert estimate is not None
    assert estimate.value == Decimal(3)


def test_cc_abstain_edge_cases() -> None:
    assert derive_cc_abstain_count(4, 3, Decimal(40), Decimal(30), None) is None
    zero = derive_cc_abstain_count(4, 3, Decimal(40), Decimal(30), Decimal(0))
    assert zero is not None and zero.value == Decimal(0)
    assert derive_cc_abstain_count(0, 0, Decimal(0), Decimal(0), Decimal(10)) is None


def test_abstain_value_from_yes_share_then_no_share() -> None:
    from_yes = derive_abstain_value(Decimal(600), Decimal(60), None, None, Decimal(20))
    from_no = derive_abstain_value(None, None, Decimal(400), Decimal(40), Decimal(20))

    assert from_yes is not None and from_yes.value == Decimal(200)
    assert from_no is not None and from_no.value == Decimal(200)
    assert derive_abstain_value(None, None, None, None, Decimal(20)) is None


def test_observed_abstain_is_not_derived() -> None:
    tally = aggregate([Vote(VoterRole.DREP, VoteChoice.ABSTAIN, Decimal(7))], VoterRole.DREP)

    estimate = observed_abstain(tally)

    assert estimate.value == Decimal(7)
    assert estimate.derived is False
