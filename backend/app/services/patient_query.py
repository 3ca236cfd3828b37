"""In-memory search, sort and pagination over the loaded patient collection."""
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from ..models.base import parse_timestamp
from ..models.patient import Patient

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class PatientPage:
    patients: List[Patient]
    total: int
    total_pages: int
    current_page: int


def matches_search(patient: Patient, search: str) -> bool:
    """Case-insensitive substring match on first name, last name or phone."""
    needle = search.lower()
    details = patient.patient_details
    return any(
        needle in value.lower()
        for value in (details.first_name, details.last_name, details.phone)
    )


def created_at_key(patient: Patient) -> datetime:
    return parse_timestamp(patient.created_at) or _EPOCH


def newest_first(patients: Sequence[Patient]) -> List[Patient]:
    return sorted(patients, key=created_at_key, reverse=True)


def query_patients(
    patients: Sequence[Patient],
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> PatientPage:
    if page < 1 or limit < 1:
        raise ValueError("page and limit must be positive")

    results = [p for p in patients if matches_search(p, search)] if search else list(patients)
    results = newest_first(results)

    total = len(results)
    start = (page - 1) * limit
    return PatientPage(
        patients=results[start:start + limit],
        total=total,
        total_pages=math.ceil(total / limit),
        current_page=page,
    )
