from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from ..models.user import User, UserRole
from ..services.patient_service import PatientService
from ..services.reports import report_service
from ..services.user_service import UserService
from .deps import get_current_user, get_patient_service, get_user_service, require_role

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/dashboard")
def get_dashboard_stats(
    patients: PatientService = Depends(get_patient_service),
    users: UserService = Depends(get_user_service),
    current_user: User = Depends(get_current_user),
):
    """Totals, recent registrations, gender/age distribution and monthly trends."""
    return report_service.dashboard(patients.load_all(), users.load_all())


@router.get("/patients")
def get_patient_report(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    gender: Optional[str] = None,
    age_group: Optional[str] = Query(None, alias="ageGroup"),
    patients: PatientService = Depends(get_patient_service),
    _user: User = Depends(require_role(UserRole.ADMIN, UserRole.DOCTOR)),
):
    return report_service.patient_report(
        patients.load_all(),
        start_date=start_date,
        end_date=end_date,
        gender=gender,
        age_group_filter=age_group,
    )


@router.get("/users")
def get_user_activity_report(
    users: UserService = Depends(get_user_service),
    _admin: User = Depends(require_role(UserRole.ADMIN)),
):
    return report_service.user_activity(users.load_all())


@router.get("/export/patients")
def export_patient_data(
    format: str = "json",
    patients: PatientService = Depends(get_patient_service),
    _admin: User = Depends(require_role(UserRole.ADMIN)),
):
    """Export every patient as JSON, or as CSV with ``?format=csv``."""
    all_patients = patients.load_all()
    if format == "csv":
        return Response(
            content=report_service.export_csv(all_patients),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=patients.csv"},
        )
    return report_service.export_records(all_patients)
