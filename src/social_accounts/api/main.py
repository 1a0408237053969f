"""FastAPI application entry point."""

from typing import Any

from fastapi import FastAPI

from social_accounts import __version__
from social_accounts.api.deps import CurrentUser
from social_accounts.api.routes import admin_router, auth_router, settings_router
from social_accounts.api.serializers import serialize_user

app = FastAPI(
    title="Social Accounts",
    description="User accounts, sign-in and preferences for a federated social network",
    version=__version__,
)

# Include routers
app.include_router(auth_router)
app.include_router(settings_router)
app.include_router(admin_router)


@app.get("/me")
async def me(current_user: CurrentUser) -> dict[str, Any]:
    """The signed-in user."""
    return serialize_user(current_user)


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
