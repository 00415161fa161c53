"""
Database models
"""
from app.models.employee import Employee
from app.models.user import User, Role
from app.models.viewer_access import ViewerAccess
from app.models.session import UserSession
from app.models.report import EodReport, Screenshot
from app.models.audit_log import AuditLog

__all__ = [
    "Employee",
    "User",
    "Role",
    "ViewerAccess",
    "UserSession",
    "EodReport",
    "Screenshot",
    "AuditLog",
]
