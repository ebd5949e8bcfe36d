"""Block scanning, artifact extraction and upstream payload normalization."""

from cgov_sync.ingest.extractor import ExtractedArtifacts, GovernanceExtractor
from cgov_sync.ingest.normalize import ObservedVote, parse_observed_vote, parse_tx_artifacts
from cgov_sync.ingest.proposals import (
    ALLOWED_PROPOSAL_TYPES,
    ProposalListing,
    build_new_action,
    derive_status,
    map_action_type_to_ui,
    parse_proposal_listing,
)
from cgov_sync.ingest.scanner import SlotRangeScanner

__all__ = [
    "ALLOWED_PROPOSAL_TYPES",
    "ExtractedArtifacts",
    "GovernanceExtractor",
    "ObservedVote",
    "ProposalListing",
    "SlotRangeScanner",
    "build_new_action",
    "derive_status",
    "map_action_type_to_ui",
    "parse_observed_vote",
    "parse_proposal_listing",
    "parse_tx_artifacts",
]
