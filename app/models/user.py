"""
Login identity model
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
import enum
from app.db.base import Base
from app.utils.datetime_utils import now_utc


class Role(str, enum.Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"
    VIEWER = "viewer"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False)
    # Required when role == employee, cleared for admin/viewer
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    employee = relationship("Employee", back_populates="users")
    viewer_grants = relationship(
        "ViewerAccess",
        foreign_keys="ViewerAccess.user_id",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ViewerAccess.created_at.desc()",
    )

    @property
    def role_enum(self) -> Role:
        return Role(self.role)
