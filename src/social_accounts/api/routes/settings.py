"""User settings routes: preferences, email changes and two-factor authentication."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Form, HTTPException, status
from fastapi.responses import JSONResponse, Response

from social_accounts.api.deps import CurrentUser, DbSession
from social_accounts.api.serializers import serialize_errors, serialize_preferences
from social_accounts.models import Errors, RecordInvalid
from social_accounts.users import service
from social_accounts.users.errors import (
    InvalidCredentialsError,
    InvalidOTPError,
    TwoFactorAlreadyEnabledError,
)

logger = logging.getLogger(__name__)

PRIVACY_OPTIONS = ("public", "unlisted", "private")

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/preferences")
async def get_preferences(current_user: CurrentUser) -> dict[str, Any]:
    return serialize_preferences(current_user)


@router.post("/preferences")
async def update_preferences(
    db: DbSession,
    current_user: CurrentUser,
    locale: Annotated[str | None, Form()] = None,
    filtered_languages: Annotated[list[str] | None, Form()] = None,
    hide_oauth: Annotated[bool | None, Form()] = None,
    default_privacy: Annotated[str | None, Form()] = None,
    boost_modal: Annotated[bool | None, Form()] = None,
    auto_play_gif: Annotated[bool | None, Form()] = None,
) -> Response:
    """Update any of the submitted preferences; omitted fields are left alone."""
    if default_privacy is not None and default_privacy not in PRIVACY_OPTIONS:
        errors = Errors()
        errors.add("default_privacy", "is not included in the list")
        return JSONResponse(
            serialize_errors(errors), status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        )

    if locale is not None:
        current_user.locale = locale or None
    if filtered_languages is not None:
        current_user.filtered_languages = filtered_languages
    if hide_oauth is not None:
        current_user.hide_oauth = hide_oauth

    if not await service.save(db, current_user):
        return JSONResponse(
            serialize_errors(current_user.errors),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    user_settings = current_user.settings
    if default_privacy is not None:
        user_settings.default_privacy = default_privacy
    if boost_modal is not None:
        user_settings.boost_modal = boost_modal
    if auto_play_gif is not None:
        user_settings.auto_play_gif = auto_play_gif
    await db.flush()
    return JSONResponse(serialize_preferences(current_user))


@router.post("/email")
async def change_email(
    db: DbSession,
    current_user: CurrentUser,
    email: Annotated[str, Form()],
    current_password: Annotated[str, Form()],
) -> Response:
    """Request an email change. The new address must be confirmed before it is used."""
    try:
        token = await service.change_email(db, current_user, email, current_password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except RecordInvalid as e:
        return JSONResponse(
            serialize_errors(e.errors), status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        )

    logger.info("Confirmation token for user %d: %s", current_user.id, token)
    return JSONResponse(
        {"unconfirmed_email": current_user.unconfirmed_email},
        status_code=status.HTTP_202_ACCEPTED,
    )


@router.post("/two_factor")
async def begin_two_factor(db: DbSession, current_user: CurrentUser) -> dict[str, str]:
    """Generate a TOTP secret and return the URI to scan."""
    try:
        uri = await service.begin_two_factor_setup(db, current_user)
    except TwoFactorAlreadyEnabledError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return {"provisioning_uri": uri}


@router.post("/two_factor/confirm")
async def confirm_two_factor(
    db: DbSession,
    current_user: CurrentUser,
    code: Annotated[str, Form()],
) -> dict[str, list[str]]:
    """Enable two-factor authentication once the user proves their app works."""
    if current_user.encrypted_otp_secret is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Two-factor setup has not been started",
        )
    try:
        backup_codes = await service.confirm_two_factor(db, current_user, code)
    except InvalidOTPError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return {"backup_codes": backup_codes}


@router.post("/two_factor/disable", status_code=status.HTTP_204_NO_CONTENT)
async def disable_two_factor(
    db: DbSession,
    current_user: CurrentUser,
    otp_attempt: Annotated[str, Form()],
) -> None:
    """Disable two-factor authentication. Requires a current code or backup code."""
    if not (
        current_user.validate_and_consume_otp(otp_attempt)
        or current_user.invalidate_otp_backup_code(otp_attempt)
    ):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Invalid two-factor authentication code",
        )
    await service.disable_two_factor(db, current_user)
