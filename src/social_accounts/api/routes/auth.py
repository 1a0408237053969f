"""Authentication routes."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Form, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response

from social_accounts.api.deps import (
    SESSION_COOKIE_NAME,
    SESSION_MAX_AGE,
    DbSession,
    create_session_token,
    get_current_user_optional,
)
from social_accounts.api.serializers import serialize_errors, serialize_user
from social_accounts.models import RecordInvalid, User
from social_accounts.users import service
from social_accounts.users.errors import (
    InvalidCredentialsError,
    InvalidOTPError,
    InvalidTokenError,
    OTPRequiredError,
    UnconfirmedAccountError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _signed_in_response(user: User, remember: bool) -> Response:
    response = JSONResponse(serialize_user(user))
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=create_session_token(user.id),
        httponly=True,
        secure=False,  # Set to True in production with HTTPS
        samesite="lax",
        max_age=SESSION_MAX_AGE if remember else None,
    )
    return response


@router.post("/register")
async def register(
    db: DbSession,
    email: Annotated[str, Form()],
    username: Annotated[str, Form()],
    password: Annotated[str, Form()],
    password_confirm: Annotated[str, Form()],
    locale: Annotated[str | None, Form()] = None,
) -> Response:
    """Create a user and account. The user must confirm before signing in."""
    try:
        user = await service.register(
            db,
            email=email,
            password=password,
            password_confirmation=password_confirm,
            username=username,
            locale=locale,
        )
    except RecordInvalid as e:
        return JSONResponse(
            serialize_errors(e.errors), status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        )

    logger.info("Confirmation token for user %d: %s", user.id, user.confirmation_token)
    return JSONResponse(serialize_user(user), status_code=status.HTTP_201_CREATED)


@router.get("/confirmation")
async def confirm(db: DbSession, confirmation_token: str) -> dict[str, Any]:
    """Confirm an email address from the link sent at registration."""
    try:
        user = await service.confirm_by_token(db, confirmation_token)
    except InvalidTokenError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return serialize_user(user)


@router.post("/login")
async def login(
    request: Request,
    db: DbSession,
    email: Annotated[str, Form()],
    password: Annotated[str, Form()],
    otp_attempt: Annotated[str | None, Form()] = None,
    remember_me: Annotated[bool, Form()] = False,
) -> Response:
    """Sign in with email, password and, when enabled, a two-factor code."""
    ip = request.client.host if request.client else None
    try:
        user = await service.authenticate(
            db, email, password, otp_attempt=otp_attempt, ip=ip, remember=remember_me
        )
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except UnconfirmedAccountError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e
    except OTPRequiredError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e)) from e
    except InvalidOTPError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e)) from e

    return _signed_in_response(user, remember_me)


@router.get("/logout")
async def logout(
    db: DbSession,
    current_user: Annotated[User | None, Depends(get_current_user_optional)],
) -> Response:
    """Log out the current user."""
    if current_user is not None:
        await service.sign_out(db, current_user)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response


@router.post("/password", status_code=status.HTTP_202_ACCEPTED)
async def request_password_reset(db: DbSession, email: Annotated[str, Form()]) -> dict[str, str]:
    """Start password recovery. The response is the same whether or not the email exists."""
    token = await service.request_password_reset(db, email)
    if token is None:
        logger.info("Password reset requested for unknown email")
    else:
        logger.info("Reset password token for %s: %s", email, token)
    return {"status": "If the address is registered, reset instructions will be sent"}


@router.put("/password")
async def reset_password(
    db: DbSession,
    reset_password_token: Annotated[str, Form()],
    password: Annotated[str, Form()],
    password_confirm: Annotated[str, Form()],
) -> Response:
    """Set a new password using a reset token."""
    try:
        user = await service.reset_password_by_token(
            db, reset_password_token, password, password_confirm
        )
    except InvalidTokenError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except RecordInvalid as e:
        return JSONResponse(
            serialize_errors(e.errors), status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        )
    return JSONResponse(serialize_user(user))
