"""
Health check endpoint
"""
from fastapi import APIRouter

from app.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Service status and version"""
    return {
        "status": "ok",
        "service": "eod-monitor-backend",
        "version": settings.VERSION,
    }
