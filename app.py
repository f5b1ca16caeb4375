"""
MediCare Reminder Backend
Main FastAPI application: medicine schedules, dose tracking, reminders and
caretaker alerts
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime

# Configuration and database
from config import settings, adherence_config
from database import StoreError, get_db_context, init_db, DatabaseHealthCheck

import models
from api import include_routers
from actions.reminder_engine import reminder_engine
from services.dose_service import dose_service
from tools.notification_service import notification_service

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


# ==================== LIFESPAN ====================

async def expire_stale_doses(grace_minutes: int) -> int:
    """Apply the auto-miss policy to every user's overdue pending doses"""
    expired = 0
    with get_db_context() as session:
        user_ids = [row.id for row in session.query(models.User.id).all()]
        for user_id in user_ids:
            logs = await dose_service.expire_overdue_doses(user_id, grace_minutes, db=session)
            expired += len(logs)
    return expired


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown"""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENV}")

    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    if settings.AUTO_MISS_AFTER_MINUTES is not None:
        expired = await expire_stale_doses(settings.AUTO_MISS_AFTER_MINUTES)
        logger.info(f"Auto-miss policy expired {expired} doses")

    if settings.REMINDERS_ENABLED:
        reminder_engine.register_ignored_handler(dose_service.handle_ignored_reminder)
        with get_db_context() as session:
            reminder_engine.rebuild_from_store(session)

    yield

    # Shutdown
    reminder_engine.shutdown()
    logger.info(f"Shutting down {settings.APP_NAME}")


# ==================== APP INITIALIZATION ====================

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    ## MediCare Reminder API

    Daily medicine schedules with reminders and adherence tracking.

    ### Features
    - **Schedules**: Morning, afternoon and night slots per medicine
    - **Reminders**: Notification at dose time with a follow-up if ignored
    - **Adherence**: Scores, weekly progress and streaks
    - **Caretakers**: Missed-dose emails, weekly reports and read-only share links
    - **Prescription scan**: Suggests medicine names from a photo
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Attach modular API routers (prefix /api/v1)
include_routers(app, prefix=settings.API_PREFIX)


# ==================== EXCEPTION HANDLERS ====================

def error_response(status_code: int, message) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": True,
            "message": message,
            "status_code": status_code,
            "timestamp": datetime.utcnow().isoformat()
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    return error_response(exc.status_code, exc.detail)


@app.exception_handler(StoreError)
async def store_error_handler(request, exc: StoreError):
    logger.warning(f"Store unavailable: {exc.message}")
    return error_response(503, exc.message)


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return error_response(500, str(exc) if settings.DEBUG else "An unexpected error occurred")


# ==================== HEALTH ENDPOINTS ====================

@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic health check"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat()
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check endpoint"""
    db_connected = DatabaseHealthCheck.is_connected()

    return {
        "status": "healthy" if db_connected else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": {
            "database": {
                "status": "up" if db_connected else "down",
                "type": "sqlite" if "sqlite" in settings.DATABASE_URL else "postgresql"
            },
            "reminders": {
                "enabled": settings.REMINDERS_ENABLED,
                "scheduled": len(reminder_engine.list_reminders()),
                "follow_up_minutes": settings.REMINDER_FOLLOW_UP_MINUTES
            },
            "integrations": {
                "prescription_extraction": bool(settings.EXTRACTION_API_KEY),
                "caretaker_email": bool(settings.RESEND_API_KEY)
            }
        },
        "config": {
            "quick_confirm_threshold_ms": adherence_config.QUICK_CONFIRM_THRESHOLD_MS,
            "auto_miss_after_minutes": settings.AUTO_MISS_AFTER_MINUTES
        },
        "version": settings.APP_VERSION,
        "environment": settings.ENV
    }


# ==================== NOTIFICATIONS ====================

@app.get(f"{settings.API_PREFIX}/notifications/inbox", tags=["Notifications"])
async def drain_notification_inbox():
    """In-app toasts queued by reminders since the last call"""
    return [n.to_dict() for n in notification_service.drain_inbox()]


@app.get(f"{settings.API_PREFIX}/reminders", tags=["Notifications"])
async def list_active_reminders():
    """Reminders armed in this process"""
    return [r.to_dict() for r in reminder_engine.list_reminders()]


# ==================== MAIN ====================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
