"""
User accounts: registration, login, password changes, profile and settings,
and admin management. Users live in their own JSON record store, seeded
with a default administrator.
"""
import logging
import secrets
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from ..core.config import settings
from ..core.errors import NotFoundError, StorageError, ValidationFailure
from ..core.security import (
    create_access_token,
    create_temporary_token,
    get_password_hash,
    verify_password,
)
from ..models.base import utc_now_iso
from ..models.store import JsonRecordStore
from ..models.user import DEFAULT_ADMIN_ID, User, UserRole
from .patient_merge import deep_merge
from .realtime import ChangeNotifier, NullNotifier

logger = logging.getLogger(__name__)


def default_admin_records() -> List[dict]:
    """Seed value for an empty users store."""
    admin = User(
        id=DEFAULT_ADMIN_ID,
        name="System Administrator",
        email=settings.DEFAULT_ADMIN_EMAIL.lower(),
        password_hash=get_password_hash(settings.DEFAULT_ADMIN_PASSWORD),
        role=UserRole.ADMIN,
        phone="1234567890",
        department="IT Administration",
    )
    logger.info("Seeding default admin user %s", admin.email)
    return [admin.to_record()]


def generate_temporary_password() -> str:
    return secrets.token_urlsafe(9)


def _token_for(user: User) -> str:
    return create_access_token({"sub": user.id, "role": user.role})


def _check_role(role: str) -> None:
    if role not in UserRole.ALL:
        raise ValidationFailure(f"Invalid role. Choose from: {UserRole.ALL}")


class UserService:
    def __init__(self, store: JsonRecordStore, notifier: Optional[ChangeNotifier] = None):
        self.store = store
        self.notifier = notifier or NullNotifier()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load_all(self, strict: bool = False) -> List[User]:
        users = []
        for record in self.store.load(strict=strict):
            record_id = record.get("id") if isinstance(record, Mapping) else repr(record)
            try:
                users.append(User.model_validate(record))
            except ValidationError as exc:
                if strict:
                    raise StorageError(f"Stored user {record_id} is invalid") from exc
                logger.error("Skipping unreadable user record %s", record_id)
        return users

    def _save_all(self, users: List[User]) -> None:
        self.store.save_all([u.to_record() for u in users])

    def _index(self, users: List[User], user_id: str) -> int:
        for index, user in enumerate(users):
            if user.id == user_id:
                return index
        raise NotFoundError("User not found")

    def _ensure_email_free(self, users: List[User], email: str, exclude_id: Optional[str] = None) -> None:
        if any(u.email == email and u.id != exclude_id for u in users):
            raise ValidationFailure("Email already in use")

    def _mutate(self, user_id: str, change: Callable[[User, List[User]], Dict[str, Any]]) -> User:
        users = self.load_all(strict=True)
        index = self._index(users, user_id)
        updates = change(users[index], users)
        updates["updated_at"] = utc_now_iso()
        users[index] = users[index].model_copy(update=updates)
        self._save_all(users)
        return users[index]

    def _add(self, user: User) -> User:
        users = self.load_all(strict=True)
        self._ensure_email_free(users, user.email)
        users.append(user)
        self._save_all(users)
        self.notifier.notify("user:created", user.to_public())
        return user

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def list_users(self) -> List[User]:
        return self.load_all()

    def get_user(self, user_id: str) -> User:
        users = self.load_all()
        return users[self._index(users, user_id)]

    def find_by_email(self, email: str) -> Optional[User]:
        email = email.lower()
        return next((u for u in self.load_all() if u.email == email), None)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def register(self, name: str, email: str, password: str, role: str = UserRole.CLERK) -> Dict[str, Any]:
        """Create an account and log it in."""
        _check_role(role)
        user = self._add(
            User(
                name=name,
                email=email.lower(),
                password_hash=get_password_hash(password),
                role=role,
            )
        )
        logger.info("Registered user %s (%s)", user.email, user.role)
        return {"token": _token_for(user), "user": user.summary(), "message": "Registration successful"}

    def login(self, email: str, password: str) -> Dict[str, Any]:
        user = self.find_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise ValidationFailure("Invalid credentials")

        if user.force_password_change:
            return {
                "token": create_temporary_token({"sub": user.id, "role": user.role}),
                "user": user.summary(),
                "requiresPasswordChange": True,
                "message": "Password change required",
            }
        return {"token": _token_for(user), "user": user.summary()}

    def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        def change(user: User, _users) -> Dict[str, Any]:
            if not verify_password(current_password, user.password_hash):
                raise ValidationFailure("Current password is incorrect")
            return {
                "password_hash": get_password_hash(new_password),
                "is_temporary_password": False,
                "force_password_change": False,
            }

        self._mutate(user_id, change)
        logger.info("Password changed for user %s", user_id)

    def force_password_change(self, user_id: str, new_password: str) -> Dict[str, Any]:
        user = self._mutate(
            user_id,
            lambda _user, _users: {
                "password_hash": get_password_hash(new_password),
                "is_temporary_password": False,
                "force_password_change": False,
            },
        )
        return {"token": _token_for(user), "user": user.summary(), "message": "Password changed successfully"}

    # ------------------------------------------------------------------
    # Self-service
    # ------------------------------------------------------------------

    def update_profile(self, user_id: str, profile: Mapping[str, Any]) -> User:
        def change(user: User, users: List[User]) -> Dict[str, Any]:
            updates = {k: v for k, v in profile.items() if k in ("name", "phone", "department") and v is not None}
            if profile.get("email"):
                email = profile["email"].lower()
                self._ensure_email_free(users, email, exclude_id=user.id)
                updates["email"] = email
            return updates

        user = self._mutate(user_id, change)
        self.notifier.notify("user:updated", user.to_public())
        return user

    def update_settings(self, user_id: str, new_settings: Mapping[str, Any]) -> Dict[str, Any]:
        user = self._mutate(
            user_id, lambda user, _users: {"settings": deep_merge(user.settings, new_settings)}
        )
        return user.settings

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def create_user(
        self,
        name: str,
        email: str,
        role: str = UserRole.CLERK,
        password: Optional[str] = None,
        phone: str = "",
        department: str = "",
    ) -> Tuple[User, Optional[str]]:
        """Create an account; without a password a temporary one is issued."""
        _check_role(role)
        temporary = None if password else generate_temporary_password()
        user = self._add(
            User(
                name=name,
                email=email.lower(),
                password_hash=get_password_hash(password or temporary),
                role=role,
                phone=phone,
                department=department,
                is_temporary_password=temporary is not None,
                force_password_change=temporary is not None,
            )
        )
        logger.info("Admin created user %s (%s)", user.email, user.role)
        return user, temporary

    def update_user(self, user_id: str, changes: Mapping[str, Any]) -> User:
        def change(user: User, users: List[User]) -> Dict[str, Any]:
            updates: Dict[str, Any] = {}
            if changes.get("name") is not None:
                updates["name"] = changes["name"]
            if changes.get("role") is not None:
                _check_role(changes["role"])
                updates["role"] = changes["role"]
            if changes.get("email"):
                email = changes["email"].lower()
                self._ensure_email_free(users, email, exclude_id=user.id)
                updates["email"] = email
            return updates

        user = self._mutate(user_id, change)
        self.notifier.notify("user:updated", user.to_public())
        return user

    def reset_password(self, user_id: str) -> str:
        temporary = generate_temporary_password()
        self._mutate(
            user_id,
            lambda _user, _users: {
                "password_hash": get_password_hash(temporary),
                "is_temporary_password": True,
                "force_password_change": True,
            },
        )
        logger.info("Password reset for user %s", user_id)
        return temporary

    def delete_user(self, user_id: str) -> User:
        users = self.load_all(strict=True)
        deleted = users.pop(self._index(users, user_id))
        self._save_all(users)
        self.notifier.notify("user:deleted", {"id": user_id})
        return deleted

