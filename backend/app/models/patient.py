"""
Patient entity and the normalization boundary.

The nested ``patientDetails`` / ``medicalRecords`` form is the only trusted
representation. The legacy flat fields (firstName, status, ...) are computed
from ``patientDetails`` on serialization and never stored independently.
Every record entering the system, from a request body or from disk, passes
through ``normalize_patient``.
"""
from typing import Any, Dict, List, Mapping, Optional

from pydantic import Field, ValidationError, computed_field

from ..core.errors import ValidationFailure
from .base import CamelModel, generate_uuid, utc_now_iso


class RecordStatus:
    ACTIVE = "Active"


class AdmissionStatus:
    ADMITTED = "Admitted"


class Sex:
    MALE = "M"
    FEMALE = "F"
    OTHER = "Other"


_SEX_SPELLINGS = {
    "m": Sex.MALE,
    "male": Sex.MALE,
    "f": Sex.FEMALE,
    "female": Sex.FEMALE,
}

# Flat field names accepted at the top level of a payload
DETAIL_FIELDS = (
    "firstName",
    "lastName",
    "dob",
    "sex",
    "phone",
    "email",
    "address",
    "emergencyContact",
    "insurance",
    "recordStatus",
    "folderNumber",
)
STATUS_ALIAS = "status"  # legacy spelling of recordStatus
NESTED_DETAIL_FIELDS = ("emergencyContact", "insurance")

MEDICAL_LIST_FIELDS = (
    "medicalHistory",
    "allergies",
    "medications",
    "vitals",
    "diagnoses",
    "treatments",
    "labResults",
    "prescriptions",
)
MEDICAL_STATUS_FIELDS = ("patientStatus", "admissionStatus")
MEDICAL_FIELDS = MEDICAL_LIST_FIELDS + MEDICAL_STATUS_FIELDS


def normalize_sex(value: Optional[str]) -> str:
    """Map the spellings seen in stored records onto M / F / Other."""
    if not value:
        return Sex.OTHER
    return _SEX_SPELLINGS.get(str(value).strip().lower(), Sex.OTHER)


class EmergencyContact(CamelModel):
    name: str = ""
    phone: str = ""
    relationship: str = ""


class Insurance(CamelModel):
    provider: str = ""
    policy_number: str = ""
    group_number: str = ""


class PatientDetails(CamelModel):
    first_name: str = ""
    last_name: str = ""
    dob: str = ""
    sex: str = Sex.MALE
    phone: str = ""
    email: str = ""
    address: str = ""
    emergency_contact: EmergencyContact = Field(default_factory=EmergencyContact)
    insurance: Insurance = Field(default_factory=Insurance)
    record_status: str = RecordStatus.ACTIVE
    folder_number: str = ""


class MedicalRecords(CamelModel):
    medical_history: List[Any] = Field(default_factory=list)
    allergies: List[Any] = Field(default_factory=list)
    medications: List[Any] = Field(default_factory=list)
    vitals: List[Any] = Field(default_factory=list)
    diagnoses: List[Any] = Field(default_factory=list)
    treatments: List[Any] = Field(default_factory=list)
    lab_results: List[Any] = Field(default_factory=list)
    prescriptions: List[Any] = Field(default_factory=list)
    patient_status: str = AdmissionStatus.ADMITTED
    admission_status: str = AdmissionStatus.ADMITTED


class Patient(CamelModel):
    id: str = Field(alias="_id")
    patient_details: PatientDetails
    medical_records: MedicalRecords
    created_at: str
    updated_at: str

    # Legacy flat mirror, derived from patient_details on every dump

    @computed_field(alias="firstName")
    @property
    def first_name(self) -> str:
        return self.patient_details.first_name

    @computed_field(alias="lastName")
    @property
    def last_name(self) -> str:
        return self.patient_details.last_name

    @computed_field(alias="dob")
    @property
    def dob(self) -> str:
        return self.patient_details.dob

    @computed_field(alias="sex")
    @property
    def sex(self) -> str:
        return self.patient_details.sex

    @computed_field(alias="phone")
    @property
    def phone(self) -> str:
        return self.patient_details.phone

    @computed_field(alias="email")
    @property
    def email(self) -> str:
        return self.patient_details.email

    @computed_field(alias="address")
    @property
    def address(self) -> str:
        return self.patient_details.address

    @computed_field(alias="emergencyContact")
    @property
    def emergency_contact(self) -> EmergencyContact:
        return self.patient_details.emergency_contact

    @computed_field(alias="insurance")
    @property
    def insurance(self) -> Insurance:
        return self.patient_details.insurance

    @computed_field(alias="status")
    @property
    def status(self) -> str:
        return self.patient_details.record_status

    @computed_field(alias="folderNumber")
    @property
    def folder_number(self) -> str:
        return self.patient_details.folder_number

    @property
    def full_name(self) -> str:
        return f"{self.patient_details.first_name} {self.patient_details.last_name}"

    def to_public(self, include_medical: bool = True) -> dict:
        record = self.to_record()
        if not include_medical:
            record.pop("medicalRecords", None)
        return record


def _has_value(value: Any) -> bool:
    return value is not None and value != ""


def _resolve(key: str, nested: Mapping, flat: Mapping, default: Any = "") -> Any:
    """Nested value if it carries one, else the same-named flat value, else default."""
    for source in (nested, flat):
        value = source.get(key)
        if _has_value(value):
            return value
    return default


def _as_mapping(value: Any, name: str) -> Mapping:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValidationFailure(f"{name} must be an object")
    return value


def _build_details(raw: Mapping) -> Dict[str, Any]:
    nested = _as_mapping(raw.get("patientDetails"), "patientDetails")
    details = {key: _resolve(key, nested, raw) for key in DETAIL_FIELDS}
    details["sex"] = _resolve("sex", nested, raw, Sex.MALE)
    details["dob"] = _resolve("dob", nested, raw, None) or utc_now_iso()
    details["recordStatus"] = _resolve(
        "recordStatus", nested, raw, raw.get(STATUS_ALIAS) or RecordStatus.ACTIVE
    )
    for key in NESTED_DETAIL_FIELDS:
        details[key] = _as_mapping(details[key] or None, key)
    if isinstance(details["email"], str):
        details["email"] = details["email"].lower()
    return details


def _build_medical(raw: Mapping) -> Dict[str, Any]:
    nested = _as_mapping(raw.get("medicalRecords"), "medicalRecords")
    medical: Dict[str, Any] = {key: _resolve(key, nested, raw, []) for key in MEDICAL_LIST_FIELDS}
    for key in MEDICAL_STATUS_FIELDS:
        medical[key] = _resolve(key, nested, raw, AdmissionStatus.ADMITTED)
    return medical


def normalize_patient(raw: Mapping, touch: bool = False) -> Patient:
    """Build the canonical Patient from nested, flat or mixed input.

    ``_id`` and ``createdAt`` are assigned only when absent. ``updatedAt`` is
    kept when present unless ``touch`` is set, so normalizing a serialized
    patient yields an equal patient.
    """
    if not isinstance(raw, Mapping):
        raise ValidationFailure("Patient payload must be an object")

    now = utc_now_iso()
    record = {
        "_id": raw.get("_id") or generate_uuid(),
        "patientDetails": _build_details(raw),
        "medicalRecords": _build_medical(raw),
        "createdAt": raw.get("createdAt") or now,
        "updatedAt": now if touch else (raw.get("updatedAt") or now),
    }
    try:
        return Patient.model_validate(record)
    except ValidationError as exc:
        raise ValidationFailure(
            "Invalid patient data",
            {"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc
