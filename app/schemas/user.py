"""
Login identity schemas (admin user management)
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_serializer, ConfigDict
from app.models.user import Role


class UserCreate(BaseModel):
    """Schema for creating a login identity"""
    username: str = Field(..., min_length=1, description="Username (unique)")
    password: str = Field(..., description="Password (min 6 characters)")
    role: Role = Field(..., description="admin, employee or viewer")
    employee_id: Optional[int] = Field(None, description="Linked employee (required for role=employee)")


class UserUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged"""
    username: Optional[str] = Field(None, min_length=1, description="Username")
    password: Optional[str] = Field(None, description="New password; omit to keep the current one")
    role: Optional[Role] = Field(None, description="admin, employee or viewer")
    employee_id: Optional[int] = Field(None, description="Linked employee")
    is_active: Optional[bool] = Field(None, description="Whether the account may log in")


class UserOut(BaseModel):
    """Schema for identity output. Never includes the password hash."""
    id: int
    username: str
    role: Role
    employee_id: Optional[int] = None
    employee_name: Optional[str] = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        from app.utils.datetime_utils import iso_8601_utc
        return iso_8601_utc(dt)
