"""
Main FastAPI application
"""
import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from healthdash.config import settings
from healthdash.database.connection import (
    create_schema,
    dispose_database,
    get_session,
    init_database,
    is_initialized,
)
from healthdash.database.seed import seed_reference_data
from healthdash.services.notification_service import purge_all_expired
from healthdash.logging_config import configure_logging
from healthdash.routes import (
    appointments,
    auth,
    care_team,
    challenges,
    fitness,
    health,
    health_insights,
    measurements,
    medications,
    notifications,
    profile,
)
from healthdash.routes.health import ENDPOINT_GROUPS

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if is_initialized():
        await create_schema()
        if settings.SEED_DATA:
            try:
                await seed_reference_data(get_session())
            except Exception:
                logger.exception("Seeding reference data failed")
        try:
            await purge_all_expired(get_session())
        except Exception:
            logger.exception("Purging expired notifications failed")
    else:
        logger.warning("Starting without a database; data endpoints will return 503")
    yield
    await dispose_database()


# Create FastAPI app
app = FastAPI(
    title="Health Dashboard API",
    description="Backend API for the health dashboard: onboarding quiz, fitness, "
                "measurements, care team, appointments, challenges and medications",
    version=settings.VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
}


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        "%s %s %d %.1fms", request.method, request.url.path, response.status_code, elapsed_ms
    )
    return response


# Initialize database
init_database()

# Uploaded avatars and prescriptions
os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(auth.router, tags=["Auth"])
app.include_router(profile.router, tags=["Profile"])
app.include_router(measurements.router, tags=["Measurements"])
app.include_router(health_insights.router, tags=["Health Insights"])
app.include_router(fitness.router, tags=["Fitness"])
app.include_router(fitness.goals_router, tags=["Fitness"])
app.include_router(care_team.router, tags=["Care Team"])
app.include_router(care_team.doctors_router, tags=["Care Team"])
app.include_router(appointments.router, tags=["Appointments"])
app.include_router(challenges.router, tags=["Challenges"])
app.include_router(notifications.router, tags=["Notifications"])
app.include_router(medications.router, tags=["Medications"])


@app.api_route(
    "/api/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def api_not_found(path: str, request: Request):
    """Unknown API route; registered last so it only catches unmatched paths"""
    return JSONResponse(
        status_code=404,
        content={
            "success": False,
            "message": f"API endpoint not found: {request.method} {request.url.path}",
            "availableEndpoints": list(ENDPOINT_GROUPS.values()),
        },
    )
