from __future__ import annotations

from cgov_sync.domain.chain import GovernanceActionType, VoterRole, parse_action_type

_DREP_ONLY: frozenset[VoterRole] = frozenset({VoterRole.DREP})

ELIGIBILITY: dict[GovernanceActionType, frozenset[VoterRole]] = {
    GovernanceActionType.NO_CONFIDENCE: frozenset({VoterRole.SPO, VoterRole.DREP}),
    GovernanceActionType.UPDATE_COMMITTEE: frozenset({VoterRole.SPO, VoterRole.DREP}),
    GovernanceActionType.NEW_CONSTITUTION: frozenset({VoterRole.DREP, VoterRole.CC}),
    GovernanceActionType.HARD_FORK_INITIATION: frozenset(
        {VoterRole.SPO, VoterRole.DREP, VoterRole.CC}
    ),
    GovernanceActionType.PARAMETER_CHANGE: frozenset({VoterRole.DREP, VoterRole.CC}),
    GovernanceActionType.TREASURY_WITHDRAWALS: frozenset({VoterRole.DREP, VoterRole.CC}),
    GovernanceActionType.INFO_ACTION: frozenset({VoterRole.SPO, VoterRole.DREP, VoterRole.CC}),
}


def eligible_roles(action_type: GovernanceActionType | str) -> frozenset[VoterRole]:
    parsed = (
        action_type
        if isinstance(action_type, GovernanceActionType)
        else parse_action_type(action_type)
    )
    if parsed is None:
        return _DREP_ONLY
    return ELIGIBILITY.get(parsed, _DREP_ONLY)


def can_role_vote_on_action(action_type: GovernanceActionType | str, role: VoterRole) -> bool:
    return role in eligible_roles(action_type)
