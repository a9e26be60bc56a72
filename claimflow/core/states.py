"""
Claim Status Definitions

Defines every lifecycle status for healthcare claims and emergency requests,
plus the record kinds and the roles that act on them.
"""
from enum import Enum


class RecordKind(str, Enum):
    """The two workflows a record can belong to."""
    HEALTHCARE_CLAIM = "HEALTHCARE_CLAIM"
    EMERGENCY_REQUEST = "EMERGENCY_REQUEST"


class ClaimStatus(str, Enum):
    """
    Enum representing the possible statuses of a claim or emergency request.

    Healthcare claim: PENDING_MEDICAL -> APPROVED_MEDICAL -> PENDING_COORDINATION -> APPROVED_FINAL
    With return: PENDING_COORDINATION -> RETURNED_FOR_REVIEW -> PENDING_COORDINATION
    Emergency request: PENDING_MEDICAL -> APPROVED_BY_MEDICAL | REJECTED_BY_MEDICAL
    """
    PENDING_MEDICAL = "PENDING_MEDICAL"
    APPROVED_MEDICAL = "APPROVED_MEDICAL"
    REJECTED_MEDICAL = "REJECTED_MEDICAL"
    PENDING_COORDINATION = "PENDING_COORDINATION"
    APPROVED_FINAL = "APPROVED_FINAL"
    REJECTED_FINAL = "REJECTED_FINAL"
    RETURNED_FOR_REVIEW = "RETURNED_FOR_REVIEW"  # Coordination sent it back to medical

    # Emergency request outcomes
    APPROVED_BY_MEDICAL = "APPROVED_BY_MEDICAL"
    REJECTED_BY_MEDICAL = "REJECTED_BY_MEDICAL"


class ProviderRole(str, Enum):
    """Roles that submit claims."""
    DOCTOR = "DOCTOR"
    PHARMACIST = "PHARMACIST"
    LAB_TECH = "LAB_TECH"
    RADIOLOGIST = "RADIOLOGIST"


class ActorRole(str, Enum):
    """Every role that can invoke a workflow operation."""
    MEDICAL_ADMIN = "MEDICAL_ADMIN"
    COORDINATION_ADMIN = "COORDINATION_ADMIN"
    INSURANCE_MANAGER = "INSURANCE_MANAGER"
    INSURANCE_CLIENT = "INSURANCE_CLIENT"
    DOCTOR = "DOCTOR"
    PHARMACIST = "PHARMACIST"
    LAB_TECH = "LAB_TECH"
    RADIOLOGIST = "RADIOLOGIST"


INITIAL_STATUS = {
    RecordKind.HEALTHCARE_CLAIM: ClaimStatus.PENDING_MEDICAL,
    RecordKind.EMERGENCY_REQUEST: ClaimStatus.PENDING_MEDICAL,
}
