"""Domain models for Cardano governance sync."""

from cgov_sync.domain.certificates import (
    CertificateKind,
    certificate_kind,
    is_governance_certificate,
)
from cgov_sync.domain.chain import (
    Anchor,
    Block,
    GovActionRef,
    GovernanceActionType,
    GovernanceCertificate,
    GovernanceProposal,
    GovernanceVote,
    ProposalAction,
    TxContext,
    VoteChoice,
    Voter,
    VoterRole,
)
from cgov_sync.domain.eligibility import can_role_vote_on_action, eligible_roles
from cgov_sync.domain.epochs import MAINNET, EpochClock
from cgov_sync.domain.records import (
    ActionStatus,
    DrepRecord,
    GovernanceActionRecord,
    NewGovernanceAction,
    SpoRecord,
    VoterVoteRecord,
)

__all__ = [
    "ActionStatus",
    "Anchor",
    "Block",
    "CertificateKind",
    "DrepRecord",
    "EpochClock",
    "GovActionRef",
    "GovernanceActionRecord",
    "GovernanceActionType",
    "GovernanceCertificate",
    "GovernanceProposal",
    "GovernanceVote",
    "MAINNET",
    "NewGovernanceAction",
    "ProposalAction",
    "SpoRecord",
    "TxContext",
    "VoteChoice",
    "Voter",
    "VoterRole",
    "VoterVoteRecord",
    "can_role_vote_on_action",
    "certificate_kind",
    "eligible_roles",
    "is_governance_certificate",
]
