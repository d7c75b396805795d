"""API routers."""

from resolvenow.routers.admin import router as admin_router
from resolvenow.routers.auth import router as auth_router
from resolvenow.routers.cases import router as cases_router
from resolvenow.routers.uploads import router as uploads_router
from resolvenow.routers.users import router as users_router
from resolvenow.routers.websocket import router as websocket_router

__all__ = [
    "admin_router",
    "auth_router",
    "cases_router",
    "uploads_router",
    "users_router",
    "websocket_router",
]
