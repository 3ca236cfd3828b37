"""HTTP-level tests for the REST API."""
import logging

import pytest

from app.models.user import UserRole

ADMIN, DOCTOR, NURSE, CLERK = UserRole.ADMIN, UserRole.DOCTOR, UserRole.NURSE, UserRole.CLERK


@pytest.fixture
def created(client, auth_headers):
    response = client.post(
        "/api/patients",
        json={"firstName": "Jane", "lastName": "Doe", "phone": "555-1234", "allergies": ["penicillin"]},
        headers=auth_headers(CLERK),
    )
    assert response.status_code == 201
    return response.json()


class TestService:
    def test_root(self, client):
        assert client.get("/").json() == {"ok": True, "name": "Records Pro API"}

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"


class TestAuthentication:
    def test_missing_token(self, client):
        response = client.get("/api/patients")
        assert response.status_code == 401
        assert response.json() == {"detail": "Could not validate credentials"}

    def test_bad_token(self, client):
        response = client.get("/api/patients", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_login_and_me(self, client):
        response = client.post("/api/auth/login", json={"email": "admin@hospital.com", "password": "admin123"})
        assert response.status_code == 200
        token = response.json()["token"]
        me = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"}).json()
        assert me["email"] == "admin@hospital.com"
        assert "passwordHash" not in me

    def test_bad_login(self, client):
        response = client.post("/api/auth/login", json={"email": "admin@hospital.com", "password": "x"})
        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid credentials"}

    def test_register(self, client):
        response = client.post(
            "/api/auth/register",
            json={"name": "New Clerk", "email": "new@x.org", "password": "pw"},
        )
        assert response.status_code == 201
        assert response.json()["user"]["role"] == CLERK

    def test_change_password(self, client):
        token = client.post(
            "/api/auth/login", json={"email": "admin@hospital.com", "password": "admin123"}
        ).json()["token"]
        response = client.post(
            "/api/auth/change-password",
            json={"currentPassword": "admin123", "newPassword": "better"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 200
        login = client.post("/api/auth/login", json={"email": "admin@hospital.com", "password": "better"})
        assert login.status_code == 200


class TestPatients:
    def test_create_returns_normalized_patient(self, created):
        assert created["_id"]
        assert created["patientDetails"]["firstName"] == "Jane"
        assert created["firstName"] == "Jane"
        assert created["status"] == "Active"

    def test_clerk_does_not_see_medical_records(self, created):
        assert "medicalRecords" not in created

    def test_doctor_sees_medical_records(self, client, auth_headers, created):
        body = client.get(f"/api/patients/{created['_id']}", headers=auth_headers(DOCTOR)).json()
        assert body["medicalRecords"]["allergies"] == ["penicillin"]

    def test_nurse_cannot_create(self, client, auth_headers):
        response = client.post("/api/patients", json={"firstName": "X"}, headers=auth_headers(NURSE))
        assert response.status_code == 403

    def test_list(self, client, auth_headers, created):
        body = client.get("/api/patients?search=555&page=1&limit=5", headers=auth_headers(NURSE)).json()
        assert body["total"] == 1
        assert body["totalPages"] == 1
        assert body["currentPage"] == 1
        assert body["patients"][0]["_id"] == created["_id"]

    def test_list_rejects_zero_page(self, client, auth_headers):
        assert client.get("/api/patients?page=0", headers=auth_headers(NURSE)).status_code == 422

    def test_get_unknown(self, client, auth_headers):
        response = client.get("/api/patients/missing", headers=auth_headers(DOCTOR))
        assert response.status_code == 404
        assert response.json() == {"detail": "Patient not found"}

    def test_full_update(self, client, auth_headers, created):
        response = client.put(
            f"/api/patients/{created['_id']}",
            json={"phone": "555-0000", "status": "Inactive"},
            headers=auth_headers(DOCTOR),
        )
        body = response.json()
        assert response.status_code == 200
        assert body["phone"] == "555-0000"
        assert body["status"] == "Inactive"
        assert body["patientDetails"]["recordStatus"] == "Inactive"

    def test_nurse_medical_rejection_lists_fields(self, client, auth_headers, created):
        response = client.put(
            f"/api/patients/{created['_id']}/medical",
            json={"vitals": [], "diagnoses": ["HTN"]},
            headers=auth_headers(NURSE),
        )
        assert response.status_code == 403
        assert response.json()["fields"] == ["diagnoses"]
        assert "Unauthorized fields: diagnoses" in response.json()["detail"]

    def test_nurse_records_vitals(self, client, auth_headers, created):
        response = client.put(
            f"/api/patients/{created['_id']}/vitals",
            json={"vitals": [{"heartRate": 72}]},
            headers=auth_headers(NURSE),
        )
        assert response.status_code == 200
        assert response.json()["medicalRecords"]["vitals"] == [{"heartRate": 72}]

    def test_details_update(self, client, auth_headers, created):
        response = client.put(
            f"/api/patients/{created['_id']}/details",
            json={"firstName": "Janet", "lastName": "Doe"},
            headers=auth_headers(CLERK),
        )
        assert response.status_code == 200
        assert response.json()["firstName"] == "Janet"

    def test_status_update(self, client, auth_headers, created):
        response = client.put(
            f"/api/patients/{created['_id']}/status",
            json={"patientStatus": "Stable"},
            headers=auth_headers(DOCTOR),
        )
        assert response.json()["medicalRecords"]["patientStatus"] == "Stable"

    def test_status_update_requires_value(self, client, auth_headers, created):
        response = client.put(
            f"/api/patients/{created['_id']}/status",
            json={"patientStatus": ""},
            headers=auth_headers(DOCTOR),
        )
        assert response.status_code == 422

    def test_delete(self, client, auth_headers, notifier, created):
        response = client.delete(f"/api/patients/{created['_id']}", headers=auth_headers(ADMIN))
        assert response.json() == {"message": "Patient deleted successfully"}
        assert notifier.events[-1] == ("patient:deleted", {"id": created["_id"]})
        assert client.get(f"/api/patients/{created['_id']}", headers=auth_headers(ADMIN)).status_code == 404

    def test_requests_are_audited(self, client, auth_headers, staff, caplog):
        with caplog.at_level(logging.INFO, logger="app.audit"):
            client.get("/api/patients", headers=auth_headers(NURSE))
        assert f"user={staff[NURSE].id} action=view resource=patients" in caplog.text


class TestUsers:
    def test_non_admin_cannot_list_users(self, client, auth_headers):
        response = client.get("/api/users", headers=auth_headers(NURSE))
        assert response.status_code == 403
        assert response.json() == {"detail": "Insufficient permissions"}

    def test_admin_lists_users(self, client, auth_headers):
        body = client.get("/api/users", headers=auth_headers(ADMIN)).json()
        assert len(body) == 4
        assert all("passwordHash" not in u for u in body)

    def test_admin_creates_user_with_temporary_password(self, client, auth_headers):
        response = client.post(
            "/api/users",
            json={"name": "New Nurse", "email": "nn@x.org", "role": NURSE},
            headers=auth_headers(ADMIN),
        )
        assert response.status_code == 201
        body = response.json()
        assert body["temporaryPassword"]
        assert body["user"]["forcePasswordChange"] is True
        login = client.post("/api/auth/login", json={"email": "nn@x.org", "password": body["temporaryPassword"]})
        assert login.json()["requiresPasswordChange"] is True

    def test_settings_update(self, client, auth_headers):
        response = client.put(
            "/api/users/me/settings",
            json={"settings": {"system": {"theme": "dark"}}},
            headers=auth_headers(DOCTOR),
        )
        settings = response.json()["settings"]
        assert settings["system"]["theme"] == "dark"
        assert settings["system"]["language"] == "en"

    def test_delete_user(self, client, auth_headers, staff):
        response = client.delete(f"/api/users/{staff[CLERK].id}", headers=auth_headers(ADMIN))
        assert response.status_code == 200
        assert client.get("/api/users/me", headers=auth_headers(CLERK)).status_code == 401


class TestReports:
    def test_dashboard_for_any_role(self, client, auth_headers, created):
        body = client.get("/api/reports/dashboard", headers=auth_headers(CLERK)).json()
        assert body["totalPatients"] == 1
        assert body["totalUsers"] == 4

    def test_patient_report_restricted(self, client, auth_headers):
        assert client.get("/api/reports/patients", headers=auth_headers(CLERK)).status_code == 403
        assert client.get("/api/reports/patients", headers=auth_headers(DOCTOR)).status_code == 200

    def test_csv_export(self, client, auth_headers, created):
        response = client.get("/api/reports/export/patients?format=csv", headers=auth_headers(ADMIN))
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"] == "attachment; filename=patients.csv"
        assert response.text.split("\n")[1].startswith('"Jane","Doe"')

    def test_json_export(self, client, auth_headers, created):
        body = client.get("/api/reports/export/patients", headers=auth_headers(ADMIN)).json()
        assert body[0]["allergies"] == ["penicillin"]
