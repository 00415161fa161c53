"""
Server-side session records

Keyed by an opaque id carried (signed) in the session cookie. ``sess`` holds
the identity snapshot captured at login; it is not refreshed when the user
row changes.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from app.db.base import Base
from app.utils.datetime_utils import now_utc


class UserSession(Base):
    __tablename__ = "sessions"

    sid = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    sess = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    expire = Column(DateTime(timezone=True), nullable=False, index=True)
