"""Authentication endpoints: register, login, change password, forced password change."""
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field

from ..models.user import User, UserRole
from ..services.user_service import UserService
from .deps import get_current_user, get_user_service

router = APIRouter(prefix="/auth", tags=["auth"])


# ── Request schemas ─────────────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str = Field(min_length=1)
    role: str = UserRole.CLERK


class LoginRequest(BaseModel):
    email: str
    password: str


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(alias="newPassword", min_length=1)


class ForcePasswordChangeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_password: str = Field(alias="newPassword", min_length=1)


# ── Endpoints ────────────────────────────────────────────────────────────────

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(req: RegisterRequest, users: UserService = Depends(get_user_service)):
    """Create an account and return a token for it."""
    return users.register(req.name, req.email, req.password, req.role)


@router.post("/login")
def login(req: LoginRequest, users: UserService = Depends(get_user_service)):
    """Authenticate; flags accounts that must change their password first."""
    return users.login(req.email, req.password)


@router.post("/change-password")
def change_password(
    req: ChangePasswordRequest,
    users: UserService = Depends(get_user_service),
    current_user: User = Depends(get_current_user),
):
    users.change_password(current_user.id, req.current_password, req.new_password)
    return {"message": "Password changed successfully"}


@router.post("/force-password-change")
def force_password_change(
    req: ForcePasswordChangeRequest,
    users: UserService = Depends(get_user_service),
    current_user: User = Depends(get_current_user),
):
    return users.force_password_change(current_user.id, req.new_password)
