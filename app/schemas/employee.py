"""
Employee schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_serializer, ConfigDict


class EmployeeCreate(BaseModel):
    """Schema for creating an employee"""
    name: str = Field(..., min_length=1, description="Employee name")
    email: str = Field(..., min_length=3, description="Employee email (unique)")
    role: str = Field(..., min_length=1, description="Job title")
    hourly_rate: Decimal = Field(default=Decimal("0"), ge=0, description="Hourly rate used for cost reports")


class EmployeeUpdate(BaseModel):
    """Schema for updating an employee"""
    name: Optional[str] = Field(None, min_length=1, description="Employee name")
    email: Optional[str] = Field(None, min_length=3, description="Employee email")
    role: Optional[str] = Field(None, min_length=1, description="Job title")
    hourly_rate: Optional[Decimal] = Field(None, ge=0, description="Hourly rate")


class EmployeeOut(BaseModel):
    id: int
    name: str
    email: str
    role: str
    hourly_rate: float
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        from app.utils.datetime_utils import iso_8601_utc
        return iso_8601_utc(dt)
