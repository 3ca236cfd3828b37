"""
Reporting - dashboard statistics, patient and user reports, patient export.
Each report is a small aggregation over the fully loaded collections.
"""
import csv
import io
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..models.base import parse_timestamp
from ..models.patient import Patient, normalize_sex
from ..models.user import User
from .patient_query import newest_first

DAYS_PER_YEAR = 365.25
RECENT_PATIENT_DAYS = 30
TREND_MONTHS = 12
RECENT_USER_COUNT = 10

AGE_GROUPS = ("0-17", "18-29", "30-49", "50-69", "70+")

CSV_HEADER = [
    "First Name",
    "Last Name",
    "Date of Birth",
    "Gender",
    "Phone",
    "Address",
    "Allergies",
    "Medical History",
    "Created At",
]


def calculate_age(dob: Any, now: datetime) -> Optional[int]:
    born = parse_timestamp(dob)
    if born is None:
        return None
    return int((now - born).total_seconds() // (DAYS_PER_YEAR * 86400))


def age_group(age: int) -> str:
    if age < 18:
        return "0-17"
    if age < 30:
        return "18-29"
    if age < 50:
        return "30-49"
    if age < 70:
        return "50-69"
    return "70+"


def _months_ago(now: datetime, months: int) -> datetime:
    month_index = now.year * 12 + (now.month - 1) - months
    year, month = divmod(month_index, 12)
    try:
        return now.replace(year=year, month=month + 1)
    except ValueError:
        return now.replace(year=year, month=month + 1, day=28)


def _iso_day(value: Any) -> str:
    parsed = parse_timestamp(value)
    return parsed.date().isoformat() if parsed else ""


def _history_entry(entry: Any) -> str:
    if isinstance(entry, dict):
        return f"{entry.get('date', '')}: {entry.get('description', '')}"
    return str(entry)


def _counts(values: Iterable[str]) -> List[Dict[str, Any]]:
    return [{"_id": key, "count": count} for key, count in Counter(values).items() if count > 0]


class ReportService:
    """Aggregations behind the reports endpoints."""

    def dashboard(
        self,
        patients: Sequence[Patient],
        users: Sequence[User],
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        created = [(p, parse_timestamp(p.created_at)) for p in patients]

        recent_cutoff = now - timedelta(days=RECENT_PATIENT_DAYS)
        recent = sum(1 for _, at in created if at and at >= recent_cutoff)

        ages = [calculate_age(p.patient_details.dob, now) for p in patients]
        age_counts = Counter(age_group(a) for a in ages if a is not None)
        age_stats = [{"_id": g, "count": age_counts[g]} for g in AGE_GROUPS if age_counts[g] > 0]

        trend_cutoff = _months_ago(now, TREND_MONTHS)
        monthly = Counter((at.year, at.month) for _, at in created if at and at >= trend_cutoff)
        monthly_stats = [
            {"_id": {"year": year, "month": month}, "count": count}
            for (year, month), count in sorted(monthly.items())
        ]

        return {
            "totalPatients": len(patients),
            "totalUsers": len(users),
            "recentPatients": recent,
            "genderDistribution": _counts(normalize_sex(p.patient_details.sex) for p in patients),
            "ageDistribution": age_stats,
            "monthlyTrends": monthly_stats,
        }

    def patient_report(
        self,
        patients: Sequence[Patient],
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        gender: Optional[str] = None,
        age_group_filter: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        selected = list(patients)

        start, end = parse_timestamp(start_date), parse_timestamp(end_date)
        if start and end:
            selected = [
                p for p in selected
                if (at := parse_timestamp(p.created_at)) is not None and start <= at <= end
            ]
        if gender:
            selected = [p for p in selected if p.patient_details.sex == gender]
        if age_group_filter:
            selected = [
                p for p in selected
                if (age := calculate_age(p.patient_details.dob, now)) is not None
                and age_group(age) == age_group_filter
            ]
        selected = newest_first(selected)

        ages = [calculate_age(p.patient_details.dob, now) for p in selected]
        total_age = sum(a for a in ages if a is not None)
        statistics = {
            "total": len(selected),
            "genderBreakdown": dict(Counter(p.patient_details.sex for p in selected)),
            "averageAge": round(total_age / len(selected)) if selected else 0,
        }

        return {
            "patients": [
                {
                    "firstName": p.first_name,
                    "lastName": p.last_name,
                    "dob": p.dob,
                    "sex": p.sex,
                    "phone": p.phone,
                    "address": p.address,
                    "createdAt": p.created_at,
                }
                for p in selected
            ],
            "statistics": statistics,
            "filters": {
                "startDate": start_date,
                "endDate": end_date,
                "gender": gender,
                "ageGroup": age_group_filter,
            },
        }

    def user_activity(self, users: Sequence[User]) -> Dict[str, Any]:
        recent = sorted(
            users,
            key=lambda u: parse_timestamp(u.created_at) or datetime.min.replace(tzinfo=timezone.utc),
            reverse=True,
        )[:RECENT_USER_COUNT]
        return {
            "roleDistribution": _counts(u.role for u in users),
            "recentUsers": [
                {"name": u.name, "email": u.email, "role": u.role, "createdAt": u.created_at}
                for u in recent
            ],
        }

    def export_records(self, patients: Sequence[Patient]) -> List[Dict[str, Any]]:
        return [
            {
                "firstName": p.first_name,
                "lastName": p.last_name,
                "dob": p.dob,
                "sex": p.sex,
                "phone": p.phone,
                "address": p.address,
                "allergies": p.medical_records.allergies,
                "medicalHistory": p.medical_records.medical_history,
                "createdAt": p.created_at,
            }
            for p in newest_first(patients)
        ]

    def export_csv(self, patients: Sequence[Patient]) -> str:
        """CSV export: every field quoted, one row per patient, newest first."""
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        for p in newest_first(patients):
            writer.writerow([
                p.first_name,
                p.last_name,
                _iso_day(p.dob),
                p.sex,
                p.phone,
                p.address,
                "; ".join(str(a) for a in p.medical_records.allergies),
                "; ".join(_history_entry(h) for h in p.medical_records.medical_history),
                _iso_day(p.created_at),
            ])
        # header ends with a newline; rows are newline-joined with no trailing newline
        return ",".join(CSV_HEADER) + "\n" + buffer.getvalue().rstrip("\n")


report_service = ReportService()
