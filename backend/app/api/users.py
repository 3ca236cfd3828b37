"""User endpoints: current-user profile and settings, admin user management."""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from ..models.user import User, UserRole
from ..services.user_service import UserService
from .deps import get_current_user, get_user_service, require_role

router = APIRouter(prefix="/users", tags=["users"])


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = None


class SettingsUpdate(BaseModel):
    settings: Dict[str, Any]


class UserCreate(BaseModel):
    name: str
    email: str
    role: str = UserRole.CLERK
    password: Optional[str] = None
    phone: str = ""
    department: str = ""


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None


# Current-user routes are declared before /{user_id}

@router.get("/me")
def get_me(current_user: User = Depends(get_current_user)):
    return current_user.to_public()


@router.put("/me/profile")
def update_profile(
    req: ProfileUpdate,
    users: UserService = Depends(get_user_service),
    current_user: User = Depends(get_current_user),
):
    return users.update_profile(current_user.id, req.model_dump(exclude_none=True)).to_public()


@router.put("/me/settings")
def update_settings(
    req: SettingsUpdate,
    users: UserService = Depends(get_user_service),
    current_user: User = Depends(get_current_user),
):
    settings = users.update_settings(current_user.id, req.settings)
    return {"message": "Settings updated successfully", "settings": settings}


@router.get("")
def list_users(
    users: UserService = Depends(get_user_service),
    _admin: User = Depends(require_role(UserRole.ADMIN)),
):
    return [u.to_public() for u in users.list_users()]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    req: UserCreate,
    users: UserService = Depends(get_user_service),
    _admin: User = Depends(require_role(UserRole.ADMIN)),
):
    """Admin-only: create an account. Without a password a temporary one is returned once."""
    user, temporary_password = users.create_user(
        req.name, req.email, req.role, req.password, req.phone, req.department
    )
    response = {"user": user.to_public()}
    if temporary_password:
        response["temporaryPassword"] = temporary_password
    return response


@router.put("/{user_id}")
def update_user(
    user_id: str,
    req: UserUpdate,
    users: UserService = Depends(get_user_service),
    _admin: User = Depends(require_role(UserRole.ADMIN)),
):
    return users.update_user(user_id, req.model_dump(exclude_none=True)).to_public()


@router.put("/{user_id}/reset-password")
def reset_user_password(
    user_id: str,
    users: UserService = Depends(get_user_service),
    _admin: User = Depends(require_role(UserRole.ADMIN)),
):
    temporary_password = users.reset_password(user_id)
    return {"message": "Password reset successfully", "temporaryPassword": temporary_password}


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    users: UserService = Depends(get_user_service),
    _admin: User = Depends(require_role(UserRole.ADMIN)),
):
    deleted = users.delete_user(user_id)
    return {"message": "User deleted successfully", "user": deleted.to_public()}
