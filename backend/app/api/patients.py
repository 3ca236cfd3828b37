from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field

from ..core.permissions import can_view_medical_records
from ..models.patient import Patient
from ..models.user import User
from ..services.patient_service import PatientService
from .deps import get_current_user, get_patient_service

router = APIRouter(prefix="/patients", tags=["patients"])


class VitalsUpdate(BaseModel):
    vitals: List[Dict[str, Any]]


class StatusUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    patient_status: str = Field(alias="patientStatus", min_length=1)


def _render(patient: Patient, current_user: User) -> dict:
    return patient.to_public(include_medical=can_view_medical_records(current_user.role))


@router.get("")
def list_patients(
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    service: PatientService = Depends(get_patient_service),
    current_user: User = Depends(get_current_user),
):
    """Search by first name, last name or phone; newest first, paginated."""
    result = service.list_patients(search=search, page=page, limit=limit)
    return {
        "patients": [_render(p, current_user) for p in result.patients],
        "totalPages": result.total_pages,
        "currentPage": result.current_page,
        "total": result.total,
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_patient(
    payload: Dict[str, Any] = Body(...),
    service: PatientService = Depends(get_patient_service),
    current_user: User = Depends(get_current_user),
):
    patient = service.create_patient(current_user.role, payload)
    return _render(patient, current_user)


@router.get("/{patient_id}")
def get_patient(
    patient_id: str,
    service: PatientService = Depends(get_patient_service),
    current_user: User = Depends(get_current_user),
):
    return _render(service.get_patient(patient_id), current_user)


@router.put("/{patient_id}")
def update_patient(
    patient_id: str,
    payload: Dict[str, Any] = Body(...),
    service: PatientService = Depends(get_patient_service),
    current_user: User = Depends(get_current_user),
):
    """Full update accepting flat legacy fields, nested objects, or both."""
    patient = service.update_patient(current_user.role, patient_id, payload)
    return _render(patient, current_user)


@router.put("/{patient_id}/details")
def update_patient_details(
    patient_id: str,
    details: Dict[str, Any] = Body(...),
    service: PatientService = Depends(get_patient_service),
    current_user: User = Depends(get_current_user),
):
    """Replace patientDetails wholesale."""
    patient = service.update_details(current_user.role, patient_id, details)
    return _render(patient, current_user)


@router.put("/{patient_id}/medical")
def update_medical_records(
    patient_id: str,
    medical: Dict[str, Any] = Body(...),
    service: PatientService = Depends(get_patient_service),
    current_user: User = Depends(get_current_user),
):
    """Merge into medicalRecords. Nurses may only send vitals and admissionStatus."""
    patient = service.update_medical_records(current_user.role, patient_id, medical)
    return _render(patient, current_user)


@router.put("/{patient_id}/vitals")
def update_vital_signs(
    patient_id: str,
    update: VitalsUpdate,
    service: PatientService = Depends(get_patient_service),
    current_user: User = Depends(get_current_user),
):
    patient = service.update_vitals(current_user.role, patient_id, update.vitals)
    return _render(patient, current_user)


@router.put("/{patient_id}/status")
def update_patient_status(
    patient_id: str,
    update: StatusUpdate,
    service: PatientService = Depends(get_patient_service),
    current_user: User = Depends(get_current_user),
):
    patient = service.update_status(current_user.role, patient_id, update.patient_status)
    return _render(patient, current_user)


@router.delete("/{patient_id}")
def delete_patient(
    patient_id: str,
    service: PatientService = Depends(get_patient_service),
    current_user: User = Depends(get_current_user),
):
    service.delete_patient(current_user.role, patient_id)
    return {"message": "Patient deleted successfully"}
