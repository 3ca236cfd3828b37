"""
Demo user seeder for Records Pro.

Creates one account per clinical role with known credentials so the
walkthrough works immediately after a fresh start. The default administrator
is seeded by the users store itself.

Credentials:
  Doctor: doctor@hospital.com / doctor123
  Nurse : nurse@hospital.com  / nurse123
  Clerk : clerk@hospital.com  / clerk123

This seeder is idempotent - it is safe to call on every startup.
"""
import logging
from typing import List

from .models.user import UserRole
from .services.user_service import UserService

logger = logging.getLogger(__name__)

DEMO_DOCTOR_EMAIL = "doctor@hospital.com"
DEMO_DOCTOR_PASSWORD = "doctor123"

DEMO_NURSE_EMAIL = "nurse@hospital.com"
DEMO_NURSE_PASSWORD = "nurse123"

DEMO_CLERK_EMAIL = "clerk@hospital.com"
DEMO_CLERK_PASSWORD = "clerk123"

DEMO_USERS = (
    ("Dr. Smith", DEMO_DOCTOR_EMAIL, DEMO_DOCTOR_PASSWORD, UserRole.DOCTOR),
    ("Nurse Johnson", DEMO_NURSE_EMAIL, DEMO_NURSE_PASSWORD, UserRole.NURSE),
    ("Clerk Davis", DEMO_CLERK_EMAIL, DEMO_CLERK_PASSWORD, UserRole.CLERK),
)


def seed_demo_data(users: UserService) -> List[str]:
    """Create the demo accounts that do not exist yet; return the emails created."""
    created = []
    for name, email, password, role in DEMO_USERS:
        if users.find_by_email(email):
            continue
        users.create_user(name, email, role, password=password)
        logger.info("[seed] Created demo user: %s (%s)", email, role)
        created.append(email)
    return created
