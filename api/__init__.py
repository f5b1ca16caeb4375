"""
API Module
FastAPI routers for the MediCare Reminder application
"""

from api.users import router as users_router
from api.medicines import router as medicines_router
from api.doses import router as doses_router
from api.adherence import router as adherence_router
from api.prescriptions import router as prescriptions_router
from api.shares import router as shares_router

from api.deps import (
    get_db,
    get_current_user_id,
    services,
)


__all__ = [
    # Routers
    "users_router",
    "medicines_router",
    "doses_router",
    "adherence_router",
    "prescriptions_router",
    "shares_router",
    # Dependencies
    "get_db",
    "get_current_user_id",
    "services",
]


def include_routers(app, prefix: str = "/api/v1"):
    """
    Include all API routers in the FastAPI app

    Usage:
        from api import include_routers
        include_routers(app)
    """
    app.include_router(users_router, prefix=prefix)
    app.include_router(medicines_router, prefix=prefix)
    app.include_router(doses_router, prefix=prefix)
    app.include_router(adherence_router, prefix=prefix)
    app.include_router(prescriptions_router, prefix=prefix)
    app.include_router(shares_router, prefix=prefix)
