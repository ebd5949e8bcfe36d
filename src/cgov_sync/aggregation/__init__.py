"""Voting power resolution and vote statistics."""

from cgov_sync.aggregation.statistics import (
    RecomputeReport,
    RoleStatistics,
    VoteStatistics,
    build_statistics,
    recompute_statistics,
    refresh_action_statistics,
)
from cgov_sync.aggregation.tally import (
    AbstainEstimate,
    VotePercentages,
    VoteTally,
    aggregate,
    derive_abstain_value,
    derive_cc_abstain_count,
    observed_abstain,
    to_percentages,
)
from cgov_sync.aggregation.voting_power import (
    PowerKey,
    VotingPowerCache,
    VotingPowerResolver,
    extract_ada,
)

__all__ = [
    "AbstainEstimate",
    "PowerKey",
    "RecomputeReport",
    "RoleStatistics",
    "VotePercentages",
    "VoteStatistics",
    "VoteTally",
    "VotingPowerCache",
    "VotingPowerResolver",
    "aggregate",
    "build_statistics",
    "derive_abstain_value",
    "derive_cc_abstain_count",
    "extract_ada",
    "observed_abstain",
    "recompute_statistics",
    "refresh_action_statistics",
    "to_percentages",
]
