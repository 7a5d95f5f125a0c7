# backend/invbill/apps/accounts/schemas.py

from __future__ import annotations

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# REGISTRATION / LOGIN
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=150)
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    username: str
    password: str


class PasswordChangeRequest(BaseModel):
    username: str
    old_password: str
    new_password: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# PASSWORD RESET
# ---------------------------------------------------------------------------


class OTPRequest(BaseModel):
    username: str


class PasswordResetRequest(BaseModel):
    username: str
    otp: str = Field(..., min_length=1, description="6-digit code sent to the registered email")
    new_password: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# RESPONSES
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    message: str
