from __future__ import annotations

from datetime import UTC, datetime

from cgov_sync.domain.chain import VoteChoice, VoterRole
from cgov_sync.domain.epochs import EpochClock
from cgov_sync.domain.records import ActionStatus
from cgov_sync.ingest.normalize import parse_observed_vote
from cgov_sync.ingest.proposals import (
    build_new_action,
    derive_status,
    map_action_type_to_ui,
    parse_proposal_listing,
)

CLOCK = EpochClock()
START_540 = CLOCK.epoch_start(540)
NOW = datetime.fromtimestamp(START_540 + 3600, tz=UTC)


def test_observed_vote_maps_roles_and_choices() -> None:
    vote = parse_observed_vote(
        {
            "voter_role": "ConstitutionalCommittee",
            "voter_id": "cc_hot1x",
            "vote": "Abstain",
            "block_time": START_540 + 10,
            "meta_url": "https://rationale",
        },
        CLOCK,
    )

    assert vote is not None
    assert vote.role is VoterRole.CC
    assert vote.choice is VoteChoice.ABSTAIN
    assert vote.epoch_no == 540
    assert vote.voted_at == datetime.fromtimestamp(START_540 + 10, tz=UTC)


def test_observed_vote_rejects_unknown_shapes() -> None:
    maybe = {"voter_role": "DRep", "voter_id": "d", "vote": "Maybe", "block_time": 1}
    alien = {"voter_role": "Alien", "voter_id": "d", "vote": "Yes", "block_time": 1}

    assert parse_observed_vote(maybe, CLOCK) is None
    assert parse_observed_vote(alien, CLOCK) is None


def test_listing_accepts_only_known_types() -> None:
    assert parse_proposal_listing(
        {"proposal_id": "p", "proposal_type": "Bogus", "block_time": 1}
    ) is None
    listing = parse_proposal_listing(
        {"proposal_id": "p", "proposal_type": "NewCommittee", "block_time": "1"}
    )
    assert listing is not None
    assert listing.proposal_index == 0


def test_ui_type_mapping() -> None:
    assert map_action_type_to_ui("InfoAction") == "Info"
    assert map_action_type_to_ui("TreasuryWithdrawals") == "Treasury"
    assert map_action_type_to_ui("NewConstitution") == "Constitution"
    assert map_action_type_to_ui("ParameterChange") == "ParameterChange"


def test_status_follows_lifecycle_epochs() -> None:
    enacted = {"enacted_epoch": 530, "ratified_epoch": 529}
    assert derive_status(enacted, 540) is ActionStatus.APPROVED
    assert derive_status({"ratified_epoch": 539}, 540) is ActionStatus.RATIFIED
    assert derive_status({"dropped_epoch": 538}, 540) is ActionStatus.NOT_APPROVED
    assert derive_status({"expired_epoch": 538}, 540) is ActionStatus.EXPIRED
    assert derive_status({"expiration": 540}, 540) is ActionStatus.EXPIRED
    assert derive_status({"expiration": 541}, 540) is ActionStatus.ACTIVE


def test_new_action_carries_metadata_and_expiry(proposal_row) -> None:
    row = proposal_row(
        "gov_action1abcdefghijklmnop",
        proposal_type="TreasuryWithdrawals",
        expiration=547,
        meta_url="https://anchor",
        meta_hash="beef",
        meta_json={
            "body": {
                "title": "Fund tooling",
                "abstract": "Short abstract",
                "motivation": "Because",
                "rationale": "Reasons",
                "references": [{"label": "doc", "uri": "https://doc"}],
            }
        },
    )
    listing = parse_proposal_listing(row)
    assert listing is not None

    action = build_new_action(listing, CLOCK, NOW)

    assert action.type == "Treasury"
    assert action.status is ActionStatus.ACTIVE
    assert action.submission_epoch == 540
    assert action.expiry_epoch == 547
    assert action.description == "Short abstract"
    assert action.motivation == "Because"
    assert action.rationale == "Reasons"
    assert action.references == [{"label": "doc", "uri": "https://doc"}]
    assert action.anchor_url == "https://anchor"
    assert action.title.startswith("Treasury action gov_action1a")


def test_new_action_defaults_expiry_without_feed_value(proposal_row) -> None:
    row = proposal_row("p1")
    del row["expiration"]
    listing = parse_proposal_listing(row)
    assert listing is not None

    action = build_new_action(listing, CLOCK, NOW)

    assert action.expiry_epoch == 546
    assert action.description is None
