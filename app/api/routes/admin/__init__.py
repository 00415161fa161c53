"""Admin API (admin role only)."""
from fastapi import APIRouter
from app.api.routes.admin import users as admin_users
from app.api.routes.admin import viewer_access as admin_viewer_access

admin_router = APIRouter(prefix="/admin", tags=["admin"])
admin_router.include_router(admin_users.router, prefix="/users", tags=["admin-users"])
admin_router.include_router(admin_viewer_access.router, prefix="/viewer-access", tags=["admin-viewer-access"])
