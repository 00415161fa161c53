"""
Main API router
"""
from fastapi import APIRouter

from app.api.routes import analytics, auth, employees, health, reports
from app.api.routes.admin import admin_router

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(admin_router)
api_router.include_router(employees.router, prefix="/employees", tags=["employees"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(analytics.router, tags=["analytics"])
