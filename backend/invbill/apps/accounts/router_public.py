# backend/invbill/apps/accounts/router_public.py

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from invbill.security import PasswordHashingError

from . import schemas, services
from .store import StoreError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

INTERNAL_ERROR_DETAIL = "Internal server error"


def get_auth_service(request: Request) -> services.AuthService:
    """The AuthService built at app start (see `invbill.main`)."""
    return request.app.state.auth_service


def _internal_error(exc: Exception, operation: str) -> HTTPException:
    logger.error(
        "Auth operation failed",
        exc_info=exc,
        extra={"operation": operation},
    )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=INTERNAL_ERROR_DETAIL,
    )


# ---------------------------------------------------------------------------
# REGISTER / LOGIN / LOGOUT
# ---------------------------------------------------------------------------


@router.post(
    "/register",
    response_model=schemas.MessageResponse,
    summary="Register a new user",
    responses={409: {"description": "Username already exists"}},
)
def register(
    payload: schemas.RegisterRequest,
    service: services.AuthService = Depends(get_auth_service),
):
    try:
        service.register(payload.username, payload.email, payload.password)
    except services.DuplicateUsernameError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        )
    except services.ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    except (StoreError, PasswordHashingError) as exc:
        raise _internal_error(exc, "register")
    return schemas.MessageResponse(message="User registered successfully")


@router.post(
    "/login",
    response_model=schemas.MessageResponse,
    summary="Check a username and password",
)
def login(
    payload: schemas.LoginRequest,
    service: services.AuthService = Depends(get_auth_service),
):
    """
    Verifies credentials only. No token or session is issued; unknown
    usernames and wrong passwords get the same 401.
    """
    try:
        service.login(payload.username, payload.password)
    except services.AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        )
    except StoreError as exc:
        raise _internal_error(exc, "login")
    return schemas.MessageResponse(message="Login successful")


@router.post(
    "/logout",
    response_model=schemas.MessageResponse,
    summary="Logout (client side)",
)
def logout():
    # Stateless auth: the client discards whatever it holds.
    return schemas.MessageResponse(message="Logout successful")


# ---------------------------------------------------------------------------
# PASSWORD CHANGE
# ---------------------------------------------------------------------------


@router.post(
    "/change_password",
    response_model=schemas.MessageResponse,
    summary="Change password using the current password",
)
def change_password(
    payload: schemas.PasswordChangeRequest,
    service: services.AuthService = Depends(get_auth_service),
):
    try:
        service.change_password(
            payload.username,
            payload.old_password,
            payload.new_password,
        )
    except services.AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        )
    except services.ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    except (StoreError, PasswordHashingError) as exc:
        raise _internal_error(exc, "change_password")
    return schemas.MessageResponse(message="Password changed successfully")


# ---------------------------------------------------------------------------
# PASSWORD RESET
# ---------------------------------------------------------------------------


@router.post(
    "/request_password_reset",
    response_model=schemas.MessageResponse,
    summary="Email a one-time reset code",
)
def request_password_reset(
    payload: schemas.OTPRequest,
    service: services.AuthService = Depends(get_auth_service),
):
    """
    Stages a 6-digit code for the user and emails it. The code is never
    part of the response.
    """
    try:
        service.request_password_reset(payload.username)
    except services.NotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        )
    except StoreError as exc:
        raise _internal_error(exc, "request_password_reset")
    return schemas.MessageResponse(message="OTP sent to registered email")


@router.post(
    "/reset_password",
    response_model=schemas.MessageResponse,
    summary="Set a new password using the emailed code",
)
def reset_password(
    payload: schemas.PasswordResetRequest,
    service: services.AuthService = Depends(get_auth_service),
):
    try:
        service.reset_password(payload.username, payload.otp, payload.new_password)
    except services.AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        )
    except services.NotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        )
    except services.ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    except (StoreError, PasswordHashingError) as exc:
        raise _internal_error(exc, "reset_password")
    return schemas.MessageResponse(message="Password reset successfully")
