from typing import Any, Dict

from pydantic import Field

from .base import CamelModel, generate_uuid, utc_now_iso


class UserRole:
    ADMIN = "admin"
    DOCTOR = "doctor"
    NURSE = "nurse"
    CLERK = "clerk"

    ALL = [ADMIN, DOCTOR, NURSE, CLERK]


DEFAULT_ADMIN_ID = "admin_default"


def default_user_settings() -> Dict[str, Any]:
    return {
        "notifications": {
            "emailNotifications": True,
            "pushNotifications": True,
            "patientUpdates": True,
            "systemAlerts": False,
        },
        "security": {
            "twoFactorAuth": False,
            "sessionTimeout": "30",
            "passwordExpiry": "90",
        },
        "system": {
            "theme": "light",
            "language": "en",
            "timezone": "UTC",
            "dateFormat": "MM/dd/yyyy",
        },
    }


class User(CamelModel):
    id: str = Field(default_factory=generate_uuid)
    name: str = ""
    email: str
    password_hash: str = ""
    role: str = UserRole.CLERK
    phone: str = ""
    department: str = ""
    is_temporary_password: bool = False
    force_password_change: bool = False
    settings: Dict[str, Any] = Field(default_factory=default_user_settings)
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)

    def to_public(self) -> dict:
        """Serialized user without the password hash."""
        record = self.to_record()
        record.pop("passwordHash", None)
        return record

    def summary(self) -> dict:
        return {"id": self.id, "name": self.name, "role": self.role}
