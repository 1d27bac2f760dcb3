"""
Health check endpoints
"""
from fastapi import APIRouter

from healthdash.config import settings
from healthdash.database.connection import is_initialized
from healthdash.utils.timeutils import isoformat, utcnow

router = APIRouter()

ENDPOINT_GROUPS = {
    "health": "/health",
    "auth": "/api/auth",
    "profile": "/api/profile",
    "measurements": "/api/measurements",
    "healthInsights": "/api/health-insights",
    "fitness": "/api/fitness",
    "goals": "/api/goals",
    "careTeam": "/api/care-team",
    "doctors": "/api/doctors",
    "appointments": "/api/appointments",
    "challenges": "/api/challenges",
    "notifications": "/api/notifications",
    "medications": "/api/medications",
}


@router.get("/health")
async def healthcheck():
    """Health check endpoint"""
    return {
        "status": "OK",
        "timestamp": isoformat(utcnow()),
        "database": {"status": "Connected" if is_initialized() else "Not configured"},
        "environment": settings.ENVIRONMENT,
        "version": settings.VERSION,
    }


@router.get("/")
async def root():
    return {
        "message": "Health Dashboard API",
        "version": settings.VERSION,
        "endpoints": ENDPOINT_GROUPS,
    }
