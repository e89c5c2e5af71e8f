"""Routers package."""

from shield.routers.access import router as access_router
from shield.routers.auth import router as auth_router
from shield.routers.checkins import router as checkins_router
from shield.routers.plans import router as plans_router

__all__ = [
    "access_router",
    "auth_router",
    "checkins_router",
    "plans_router",
]
