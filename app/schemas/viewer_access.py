"""
Viewer access schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_serializer


class ViewerAccessCreate(BaseModel):
    """Create a viewer identity together with its first grant"""
    username: str = Field(..., min_length=1, description="Viewer username (unique)")
    password: str = Field(..., description="Viewer password (min 6 characters)")
    notes: Optional[str] = Field(None, description="Free-text note, e.g. who the access is for")


class ViewerAccessCreated(BaseModel):
    id: int
    username: str
    expires_at: datetime

    @field_serializer("expires_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        from app.utils.datetime_utils import iso_8601_utc
        return iso_8601_utc(dt)


class ViewerAccessOut(BaseModel):
    """A grant annotated with its derived status (active, expired or revoked)"""
    id: int
    user_id: int
    username: str
    is_active: bool
    created_at: datetime
    expires_at: datetime
    revoked_at: Optional[datetime] = None
    created_by: Optional[int] = None
    created_by_username: Optional[str] = None
    notes: Optional[str] = None
    status: str

    @field_serializer("created_at", "expires_at", "revoked_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        from app.utils.datetime_utils import iso_8601_utc
        return iso_8601_utc(dt)
