"""
Patient record operations: permission gate, merge, normalize, persist, notify.
"""
import logging
from typing import Any, List, Mapping, Optional

from ..core import permissions
from ..core.errors import ForbiddenError, NotFoundError, RecordsError, StorageError, ValidationFailure
from ..core.permissions import Rejection
from ..models.patient import Patient, normalize_patient
from ..models.store import JsonRecordStore
from . import patient_merge
from .patient_query import PatientPage, query_patients
from .realtime import ChangeNotifier, NullNotifier

logger = logging.getLogger(__name__)

# Assigned by the server, never taken from a create payload
_SERVER_FIELDS = ("_id", "createdAt", "updatedAt")


def _enforce(rejection: Optional[Rejection], role: str) -> None:
    if rejection is None:
        return
    logger.warning("Rejected %s for role %s: %s", rejection.operation, role, rejection.message)
    details = {"fields": rejection.fields} if rejection.fields else None
    raise ForbiddenError(rejection.message, details)


class PatientService:
    def __init__(self, store: JsonRecordStore, notifier: Optional[ChangeNotifier] = None):
        self.store = store
        self.notifier = notifier or NullNotifier()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load_all(self, strict: bool = False) -> List[Patient]:
        patients = []
        for record in self.store.load(strict=strict):
            record_id = record.get("_id") if isinstance(record, Mapping) else repr(record)
            try:
                patients.append(normalize_patient(record))
            except RecordsError as exc:
                if strict:
                    raise StorageError(f"Stored patient {record_id} is invalid") from exc
                logger.error("Skipping unreadable patient record %s: %s", record_id, exc.message)
        return patients

    def _save_all(self, patients: List[Patient]) -> None:
        self.store.save_all([p.to_record() for p in patients])

    def _find(self, patients: List[Patient], patient_id: str) -> int:
        for index, patient in enumerate(patients):
            if patient.id == patient_id:
                return index
        raise NotFoundError("Patient not found")

    def _replace(self, patient_id: str, update) -> Patient:
        """Load strictly, apply ``update`` to the stored patient, save the collection."""
        patients = self.load_all(strict=True)
        index = self._find(patients, patient_id)
        patients[index] = update(patients[index])
        self._save_all(patients)
        return patients[index]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_patients(self, search: Optional[str] = None, page: int = 1, limit: int = 10) -> PatientPage:
        return query_patients(self.load_all(), search=search, page=page, limit=limit)

    def get_patient(self, patient_id: str) -> Patient:
        patients = self.load_all()
        return patients[self._find(patients, patient_id)]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_patient(self, role: str, payload: Mapping[str, Any]) -> Patient:
        _enforce(permissions.check_create(role), role)
        if not isinstance(payload, Mapping):
            raise ValidationFailure("Patient payload must be an object")
        data = {k: v for k, v in payload.items() if k not in _SERVER_FIELDS}
        patient = normalize_patient(data)

        patients = self.load_all(strict=True)
        patients.append(patient)
        self._save_all(patients)
        logger.info("Created patient %s (%s)", patient.id, patient.full_name)
        self.notifier.notify("patient:created", patient.to_record())
        return patient

    def update_patient(self, role: str, patient_id: str, patch: Mapping[str, Any]) -> Patient:
        """Full update. Only fields that actually change are permission-checked."""
        def update(existing: Patient) -> Patient:
            plan = patient_merge.split_patch(patch)
            record = existing.to_record()
            if patient_merge.changed_fields(record["patientDetails"], plan.details):
                _enforce(permissions.check_details_update(role), role)
            changed_medical = patient_merge.changed_fields(record["medicalRecords"], plan.medical)
            if changed_medical:
                _enforce(permissions.check_medical_update(role, changed_medical), role)
            return patient_merge.apply_update(existing, patch)

        patient = self._replace(patient_id, update)
        self.notifier.notify("patient:updated", patient.to_record())
        return patient

    def update_details(self, role: str, patient_id: str, details: Mapping[str, Any]) -> Patient:
        _enforce(permissions.check_details_update(role), role)
        patient = self._replace(patient_id, lambda p: patient_merge.replace_details(p, details))
        self.notifier.notify("patient:updated", patient.to_record())
        return patient

    def update_medical_records(self, role: str, patient_id: str, medical: Mapping[str, Any]) -> Patient:
        if not isinstance(medical, Mapping):
            raise ValidationFailure("Medical records must be an object")
        _enforce(permissions.check_medical_update(role, list(medical.keys())), role)
        patient = self._replace(patient_id, lambda p: patient_merge.merge_medical_records(p, medical))
        self.notifier.notify("patient:medical-updated", patient.to_record())
        return patient

    def update_vitals(self, role: str, patient_id: str, vitals: Any) -> Patient:
        _enforce(permissions.check_vitals_update(role), role)
        patient = self._replace(patient_id, lambda p: patient_merge.replace_vitals(p, vitals))
        self.notifier.notify("patient:vitals-updated", patient.to_record())
        return patient

    def update_status(self, role: str, patient_id: str, patient_status: Any) -> Patient:
        _enforce(permissions.check_status_update(role), role)
        patient = self._replace(
            patient_id, lambda p: patient_merge.replace_patient_status(p, patient_status)
        )
        self.notifier.notify("patient:status-updated", patient.to_record())
        return patient

    def delete_patient(self, role: str, patient_id: str) -> Patient:
        _enforce(permissions.check_delete(role), role)
        patients = self.load_all(strict=True)
        deleted = patients.pop(self._find(patients, patient_id))
        self._save_all(patients)
        logger.info("Deleted patient %s", patient_id)
        self.notifier.notify("patient:deleted", {"id": patient_id})
        return deleted
