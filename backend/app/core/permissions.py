"""
Role-based permission matrix for patient records.
Gate functions are pure: they return a ``Rejection`` describing what was
refused, or None when the role may proceed.
"""
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ..models.user import UserRole

# Permission constants
PERM_CREATE_PATIENTS = "create_patients"
PERM_MANAGE_PATIENT_DETAILS = "manage_patient_details"
PERM_MANAGE_MEDICAL_RECORDS = "manage_medical_records"
PERM_MANAGE_LIMITED_MEDICAL_RECORDS = "manage_limited_medical_records"
PERM_MANAGE_VITAL_SIGNS = "manage_vital_signs"
PERM_MANAGE_PATIENT_STATUS = "manage_patient_status"
PERM_DELETE_PATIENTS = "delete_patients"
PERM_VIEW_MEDICAL_RECORDS = "view_medical_records"

# Medical-record fields a limited role may set
LIMITED_MEDICAL_FIELDS = ("vitals", "admissionStatus")

# Role permission matrix
ROLE_PERMISSIONS: dict = {
    UserRole.CLERK: {
        PERM_CREATE_PATIENTS,
        PERM_MANAGE_PATIENT_DETAILS,
    },
    UserRole.NURSE: {
        PERM_MANAGE_PATIENT_DETAILS,
        PERM_MANAGE_LIMITED_MEDICAL_RECORDS,
        PERM_MANAGE_VITAL_SIGNS,
        PERM_VIEW_MEDICAL_RECORDS,
    },
    UserRole.DOCTOR: {
        PERM_MANAGE_PATIENT_DETAILS,
        PERM_MANAGE_MEDICAL_RECORDS,
        PERM_MANAGE_VITAL_SIGNS,
        PERM_MANAGE_PATIENT_STATUS,
        PERM_VIEW_MEDICAL_RECORDS,
    },
    UserRole.ADMIN: {
        PERM_MANAGE_VITAL_SIGNS,
        PERM_MANAGE_PATIENT_STATUS,
        PERM_DELETE_PATIENTS,
        PERM_VIEW_MEDICAL_RECORDS,
    },
}


@dataclass
class Rejection:
    operation: str
    message: str
    fields: List[str] = field(default_factory=list)


def has_permission(role: str, permission: str) -> bool:
    """Check if a role has a specific permission."""
    return permission in ROLE_PERMISSIONS.get(role, set())


def _require(role: str, permission: str, operation: str, message: str) -> Optional[Rejection]:
    if has_permission(role, permission):
        return None
    return Rejection(operation=operation, message=message)


def check_create(role: str) -> Optional[Rejection]:
    return _require(role, PERM_CREATE_PATIENTS, "create", "Only clerks can create patient records")


def check_details_update(role: str) -> Optional[Rejection]:
    return _require(
        role,
        PERM_MANAGE_PATIENT_DETAILS,
        "update_details",
        "You do not have permission to update patient details",
    )


def check_medical_update(role: str, fields: Iterable[str]) -> Optional[Rejection]:
    """Doctors may set any medical field; nurses only vitals and admission status."""
    if has_permission(role, PERM_MANAGE_MEDICAL_RECORDS):
        return None
    if has_permission(role, PERM_MANAGE_LIMITED_MEDICAL_RECORDS):
        unauthorized = [f for f in fields if f not in LIMITED_MEDICAL_FIELDS]
        if not unauthorized:
            return None
        return Rejection(
            operation="update_medical",
            message=(
                "Nurses can only update vital signs and admission status. "
                f"Unauthorized fields: {', '.join(unauthorized)}"
            ),
            fields=unauthorized,
        )
    return Rejection(
        operation="update_medical",
        message="You do not have permission to update medical records",
    )


def check_vitals_update(role: str) -> Optional[Rejection]:
    return _require(
        role,
        PERM_MANAGE_VITAL_SIGNS,
        "update_vitals",
        "You do not have permission to update vital signs",
    )


def check_status_update(role: str) -> Optional[Rejection]:
    return _require(
        role,
        PERM_MANAGE_PATIENT_STATUS,
        "update_status",
        "You do not have permission to update patient status",
    )


def check_delete(role: str) -> Optional[Rejection]:
    return _require(role, PERM_DELETE_PATIENTS, "delete", "Only admins can delete patient records")


def can_view_medical_records(role: str) -> bool:
    return has_permission(role, PERM_VIEW_MEDICAL_RECORDS)
