"""API routers for the VidTube API."""

from app.api.routes_health import router as health_router
from app.api.routes_users import router as users_router

__all__ = [
    "health_router",
    "users_router",
]
