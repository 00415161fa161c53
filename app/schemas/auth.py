"""
Authentication schemas
"""
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from app.models.user import Role


class LoginRequest(BaseModel):
    """Login request schema"""
    username: str = Field(..., min_length=1, description="Username")
    password: str = Field(..., min_length=1, description="Password")


class ChangePasswordRequest(BaseModel):
    """Self-service password change"""
    current_password: str = Field(..., alias="currentPassword", description="Current password")
    new_password: str = Field(..., alias="newPassword", description="New password (min 6 characters)")

    model_config = ConfigDict(populate_by_name=True)


class SessionUser(BaseModel):
    """
    Identity snapshot stored in a session at login.

    Employee name/email/role are denormalised for display and are not
    refreshed until the next login.
    """
    id: int
    username: str
    role: Role
    employee_id: Optional[int] = None
    employee_name: Optional[str] = None
    employee_email: Optional[str] = None
    employee_role: Optional[str] = None


class UserEnvelope(BaseModel):
    user: SessionUser


class MessageResponse(BaseModel):
    message: str
