"""API routes."""

from social_accounts.api.routes.admin import router as admin_router
from social_accounts.api.routes.auth import router as auth_router
from social_accounts.api.routes.settings import router as settings_router

__all__ = ["admin_router", "auth_router", "settings_router"]
