"""Shared FastAPI dependencies: stores, services, current user and role checks."""
from functools import lru_cache
from typing import Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from ..core.config import settings
from ..core.errors import NotFoundError
from ..core.security import decode_access_token
from ..models.store import JsonRecordStore
from ..models.user import User
from ..services.patient_service import PatientService
from ..services.realtime import ChangeNotifier, hub
from ..services.user_service import UserService, default_admin_records

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


@lru_cache
def get_patient_store() -> JsonRecordStore:
    return JsonRecordStore(settings.patients_path)


@lru_cache
def get_user_store() -> JsonRecordStore:
    return JsonRecordStore(settings.users_path, seed=default_admin_records)


def get_notifier() -> ChangeNotifier:
    return hub


def get_patient_service(
    store: JsonRecordStore = Depends(get_patient_store),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> PatientService:
    return PatientService(store, notifier)


def get_user_service(
    store: JsonRecordStore = Depends(get_user_store),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> UserService:
    return UserService(store, notifier)


def authenticate_token(token: Optional[str], users: UserService) -> Optional[User]:
    """Resolve a bearer token to its stored user, or None."""
    if not token:
        return None
    payload = decode_access_token(token)
    if payload is None or not payload.get("sub"):
        return None
    try:
        return users.get_user(payload["sub"])
    except NotFoundError:
        return None


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    users: UserService = Depends(get_user_service),
) -> User:
    user = authenticate_token(token, users)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_role(*roles: str) -> Callable[..., User]:
    def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return current_user

    return checker
