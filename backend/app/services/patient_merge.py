"""
Patient update merging.

A full update may mix legacy flat fields with nested ``patientDetails`` /
``medicalRecords`` objects. Flat fields are lifted into the matching nested
patch, which is deep-merged onto the stored values: sub-fields absent from
the patch keep their prior values. Narrow updates touch exactly one area.
Every result goes back through ``normalize_patient`` so the flat mirror is
re-derived and ``updatedAt`` bumped.
"""
import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from ..core.errors import ValidationFailure
from ..models.patient import (
    DETAIL_FIELDS,
    MEDICAL_FIELDS,
    STATUS_ALIAS,
    Patient,
    normalize_patient,
)


def deep_merge(base: Mapping, patch: Mapping) -> Dict[str, Any]:
    """Merge ``patch`` onto ``base`` recursively; lists and scalars are replaced."""
    merged = copy.deepcopy(dict(base))
    for key, value in patch.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


@dataclass
class UpdatePlan:
    """A full-update payload split into its nested patches."""

    details: Dict[str, Any] = field(default_factory=dict)
    medical: Dict[str, Any] = field(default_factory=dict)


def _require_mapping(value: Any, name: str) -> Mapping:
    if not isinstance(value, Mapping):
        raise ValidationFailure(f"{name} must be an object")
    return value


def split_patch(patch: Mapping) -> UpdatePlan:
    """Lift flat fields into nested patches unless the nested object is supplied."""
    _require_mapping(patch, "Update payload")
    plan = UpdatePlan()

    if patch.get("patientDetails") is not None:
        plan.details = dict(_require_mapping(patch["patientDetails"], "patientDetails"))
    else:
        plan.details = {key: patch[key] for key in DETAIL_FIELDS if key in patch}
        if STATUS_ALIAS in patch and "recordStatus" not in plan.details:
            plan.details["recordStatus"] = patch[STATUS_ALIAS]

    if patch.get("medicalRecords") is not None:
        plan.medical = dict(_require_mapping(patch["medicalRecords"], "medicalRecords"))
    else:
        plan.medical = {key: patch[key] for key in MEDICAL_FIELDS if key in patch}

    return plan


def changed_fields(current: Mapping, patch: Mapping) -> List[str]:
    """Names of patch fields whose merged value differs from ``current``."""
    changed = []
    for key, value in patch.items():
        before = current.get(key)
        if isinstance(before, Mapping) and isinstance(value, Mapping):
            after = deep_merge(before, value)
        else:
            after = value
        if after != before:
            changed.append(key)
    return changed


def _rebuild(existing: Patient, details: Mapping, medical: Mapping) -> Patient:
    details = dict(details)
    # an update never falls back to the "now" default for the birth date
    if not details.get("dob"):
        details["dob"] = existing.patient_details.dob
    return normalize_patient(
        {
            "_id": existing.id,
            "createdAt": existing.created_at,
            "patientDetails": details,
            "medicalRecords": medical,
        },
        touch=True,
    )


def apply_update(existing: Patient, patch: Mapping) -> Patient:
    """Full update: deep-merge both nested patches onto the stored patient."""
    plan = split_patch(patch)
    record = existing.to_record()
    return _rebuild(
        existing,
        deep_merge(record["patientDetails"], plan.details),
        deep_merge(record["medicalRecords"], plan.medical),
    )


def replace_details(existing: Patient, details: Mapping) -> Patient:
    """Narrow details update: the body replaces ``patientDetails`` wholesale."""
    _require_mapping(details, "Patient details")
    record = existing.to_record()
    return _rebuild(existing, details, record["medicalRecords"])


def merge_medical_records(existing: Patient, medical: Mapping) -> Patient:
    """Narrow medical update: deep-merge onto ``medicalRecords``."""
    _require_mapping(medical, "Medical records")
    record = existing.to_record()
    return _rebuild(existing, record["patientDetails"], deep_merge(record["medicalRecords"], medical))


def replace_vitals(existing: Patient, vitals: Any) -> Patient:
    if not isinstance(vitals, list):
        raise ValidationFailure("vitals must be a list of readings")
    record = existing.to_record()
    medical = record["medicalRecords"]
    medical["vitals"] = vitals
    return _rebuild(existing, record["patientDetails"], medical)


def replace_patient_status(existing: Patient, patient_status: Any) -> Patient:
    if not isinstance(patient_status, str) or not patient_status:
        raise ValidationFailure("patientStatus must be a non-empty string")
    record = existing.to_record()
    medical = record["medicalRecords"]
    medical["patientStatus"] = patient_status
    return _rebuild(existing, record["patientDetails"], medical)
