from cgov_sync.domain.certificates import (
    CertificateKind,
    certificate_kind,
    is_governance_certificate,
)


def test_known_governance_type_is_kept() -> None:
    assert is_governance_certificate("drep_registration") is True


def test_unrelated_type_is_dropped() -> None:
    assert is_governance_certificate("unrelated_cert") is False


def test_known_type_matches_as_substring() -> None:
    assert is_governance_certificate("pool_update_v2") is True


def test_empty_type_is_dropped() -> None:
    assert is_governance_certificate("") is False
    assert is_governance_certificate({"type": None}) is False


def test_keyword_fallback_keeps_unseen_governance_types() -> None:
    assert is_governance_certificate("constitutional_committee_thing") is True
    assert is_governance_certificate({"type": "Stake_Vote_Deleg"}) is True


def test_certificate_kind_buckets() -> None:
    assert certificate_kind("drep_registration") is CertificateKind.DREP_REGISTRATION
    assert certificate_kind("drep_retire") is CertificateKind.DREP_DEREGISTRATION
    assert certificate_kind("pool_retire") is CertificateKind.POOL_RETIREMENT
    assert certificate_kind("pool_update") is CertificateKind.POOL_REGISTRATION
    assert certificate_kind("stake_vote_deleg") is CertificateKind.VOTE_DELEGATION
    assert certificate_kind("pool_delegation") is CertificateKind.STAKE_DELEGATION
    assert certificate_kind("committee_hot_auth") is CertificateKind.COMMITTEE_UPDATE
    assert certificate_kind("treasury_mir") is CertificateKind.TREASURY_TRANSFER
