"""
Coaching Management API - FastAPI Application
Main entry point with all routes configured.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coaching_api.config import settings
from coaching_api.database import init_db
from coaching_api.core.exceptions import CoachingAPIException
from coaching_api.core.logging import configure_logging, AccessLogMiddleware
from coaching_api.core.rate_limit import AuthRateLimitMiddleware
from coaching_api.schemas.common import HealthResponse

# Import all API routers
from coaching_api.api import (
    auth, users, organizations, sessions, goals, payments, dashboard, activity, exports
)

# Import models to ensure they are registered with SQLModel
from coaching_api.models import (  # noqa: F401
    User, Organization, CoachingSession, Goal, Payment, Activity
)

API_VERSION = "1.0.0"

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    await init_db()
    logger.info("Database initialised")
    yield
    # Shutdown


app = FastAPI(
    title="Coaching Management API",
    description="Multi-tenant coaching management: sessions, goals, invoicing and audit log",
    version=API_VERSION,
    lifespan=lifespan
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(AuthRateLimitMiddleware)
app.add_middleware(AccessLogMiddleware)


@app.exception_handler(CoachingAPIException)
async def coaching_exception_handler(request: Request, exc: CoachingAPIException):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation failed", "errors": jsonable_encoder(exc.errors())}
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Include all routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(organizations.router)
app.include_router(sessions.router)
app.include_router(goals.router)
app.include_router(payments.router)
app.include_router(dashboard.router)
app.include_router(activity.router)
app.include_router(exports.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "message": "Coaching Management API is running",
        "version": API_VERSION,
        "docs": "/docs"
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Detailed health check."""
    return HealthResponse(status="healthy", version=API_VERSION)
