"""Shared test fixtures: temporary stores, services, a recording notifier and an API client."""
import pytest
from fastapi.testclient import TestClient

from app.api import deps
from app.core.security import create_access_token
from app.main import app
from app.models.patient import normalize_patient
from app.models.store import JsonRecordStore
from app.models.user import DEFAULT_ADMIN_ID, User, UserRole
from app.services.patient_service import PatientService
from app.services.user_service import UserService, default_admin_records


class RecordingNotifier:
    """Collects (event, payload) pairs instead of delivering them."""

    def __init__(self):
        self.events = []

    def notify(self, event, payload):
        self.events.append((event, payload))

    @property
    def names(self):
        return [event for event, _ in self.events]


def make_patient(first_name="Jane", last_name="Doe", phone="", created_at=None, **extra):
    raw = {"firstName": first_name, "lastName": last_name, "phone": phone, **extra}
    if created_at:
        raw["createdAt"] = created_at
    return normalize_patient(raw)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def patient_store(tmp_path):
    return JsonRecordStore(str(tmp_path / "data" / "patients.json"))


@pytest.fixture
def user_store(tmp_path):
    return JsonRecordStore(str(tmp_path / "data" / "users.json"), seed=default_admin_records)


@pytest.fixture
def patient_service(patient_store, notifier):
    return PatientService(patient_store, notifier)


@pytest.fixture
def user_service(user_store, notifier):
    return UserService(user_store, notifier)


@pytest.fixture
def staff(user_store):
    """One account per role, keyed by role. Only the seeded admin has a password."""
    records = user_store.load()
    accounts = {UserRole.ADMIN: User.model_validate(records[0])}
    for role in (UserRole.DOCTOR, UserRole.NURSE, UserRole.CLERK):
        user = User(id=f"{role}-1", name=f"Test {role}", email=f"{role}@test.local", role=role)
        accounts[role] = user
        records.append(user.to_record())
    user_store.save_all(records)
    assert accounts[UserRole.ADMIN].id == DEFAULT_ADMIN_ID
    return accounts


@pytest.fixture
def auth_headers(staff):
    def headers(role):
        user = staff[role]
        token = create_access_token({"sub": user.id, "role": user.role})
        return {"Authorization": f"Bearer {token}"}

    return headers


@pytest.fixture
def client(patient_store, user_store, notifier):
    app.dependency_overrides[deps.get_patient_store] = lambda: patient_store
    app.dependency_overrides[deps.get_user_store] = lambda: user_store
    app.dependency_overrides[deps.get_notifier] = lambda: notifier
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
