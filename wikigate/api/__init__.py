"""API routes."""

from .pages import router as pages_router
from .search import router as search_router
from .files import router as files_router
from .auth_routes import router as auth_router, login_router

__all__ = [
    "pages_router",
    "search_router",
    "files_router",
    "auth_router",
    "login_router",
]
