"""Conway-era certificate classification.

``is_governance_certificate`` is a pure predicate over the certificate type
tag. It tries an exact match against the known types, then substring
containment of a known type, then a permissive keyword fallback so that
unseen governance-adjacent types are kept rather than dropped.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum

KNOWN_GOVERNANCE_CERT_TYPES: frozenset[str] = frozenset(
    {
        "committee_hot_auth",
        "committee_cold_resign",
        "drep_registration",
        "drep_retire",
        "drep_update",
        "pool_delegation",
        "pool_registration",
        "pool_retire",
        "pool_update",
        "stake_deregistration",
        "stake_registration",
        "treasury_mir",
        "vote_delegation",
    }
)

GOVERNANCE_KEYWORDS: tuple[str, ...] = (
    "stake",
    "pool",
    "drep",
    "vote",
    "deleg",
    "committee",
    "constitutional",
)


class CertificateKind(StrEnum):
    POOL_REGISTRATION = "pool_registration"
    POOL_RETIREMENT = "pool_retirement"
    DREP_REGISTRATION = "drep_registration"
    DREP_DEREGISTRATION = "drep_deregistration"
    DREP_UPDATE = "drep_update"
    VOTE_DELEGATION = "vote_delegation"
    STAKE_DELEGATION = "stake_delegation"
    STAKE_REGISTRATION = "stake_registration"
    STAKE_DEREGISTRATION = "stake_deregistration"
    COMMITTEE_UPDATE = "committee_update"
    TREASURY_TRANSFER = "treasury_transfer"
    OTHER = "other"


def _normalize(cert_type: object) -> str:
    if not isinstance(cert_type, str):
        return ""
    return cert_type.strip().lower()


def is_governance_certificate(cert: Mapping[str, object] | str) -> bool:
    cert_type = _normalize(cert if isinstance(cert, str) else cert.get("type"))
    if not cert_type:
        return False

    if cert_type in KNOWN_GOVERNANCE_CERT_TYPES:
        return True

    if any(known in cert_type for known in KNOWN_GOVERNANCE_CERT_TYPES):
        return True

    return any(keyword in cert_type for keyword in GOVERNANCE_KEYWORDS)


def certificate_kind(cert_type: str) -> CertificateKind:
    normalized = _normalize(cert_type)
    if "drep" in normalized:
        if "retire" in normalized or "dereg" in normalized or "unreg" in normalized:
            return CertificateKind.DREP_DEREGISTRATION
        if "update" in normalized:
            return CertificateKind.DREP_UPDATE
        return CertificateKind.DREP_REGISTRATION
    if "committee" in normalized or "constitutional" in normalized:
        return CertificateKind.COMMITTEE_UPDATE
    # stake_vote_deleg and friends count as vote delegation, not stake delegation
    if "vote" in normalized and "deleg" in normalized:
        return CertificateKind.VOTE_DELEGATION
    if "pool" in normalized:
        if "retire" in normalized:
            return CertificateKind.POOL_RETIREMENT
        if "deleg" in normalized:
            return CertificateKind.STAKE_DELEGATION
        return CertificateKind.POOL_REGISTRATION
    if "stake" in normalized:
        if "dereg" in normalized or "unreg" in normalized:
            return CertificateKind.STAKE_DEREGISTRATION
        if "deleg" in normalized:
            return CertificateKind.STAKE_DELEGATION
        return CertificateKind.STAKE_REGISTRATION
    if "deleg" in normalized:
        return CertificateKind.STAKE_DELEGATION
    if "mir" in normalized or "treasury" in normalized:
        return CertificateKind.TREASURY_TRANSFER
    return CertificateKind.OTHER
