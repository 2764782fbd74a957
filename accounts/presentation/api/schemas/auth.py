"""Pydantic schemas for the authentication API."""

from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from ....services.password_hasher import MAX_PASSWORD_BYTES, password_fits


def _check_password_bytes(value: str) -> str:
    if not password_fits(value):
        raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return value


class SignUpRequest(BaseModel):
    """Request schema for account registration."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    first_name: Optional[str] = Field(default=None, max_length=80)
    last_name: Optional[str] = Field(default=None, max_length=80)
    company: Optional[str] = Field(default=None, max_length=120)
    job_title: Optional[str] = Field(default=None, max_length=120)
    phone: Optional[str] = Field(default=None, max_length=40)
    country: Optional[str] = Field(default=None, max_length=80)
    accepts_terms: bool = False
    marketing_opt_in: bool = False

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class GoogleLoginRequest(BaseModel):
    """Identity returned by Google Sign-In after the client verified the ID token."""

    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    picture_url: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenRequest(BaseModel):
    token: str


class EmailRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(..., min_length=8, max_length=72)

    @field_validator("new_password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _check_password_bytes(value)


class ProfileResponse(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    phone: Optional[str] = None
    country: Optional[str] = None
    picture_url: Optional[str] = None


class UserResponse(BaseModel):
    """Response schema for user data. Never includes credentials."""

    id: str
    email: str
    role: str
    status: str
    last_login_at: Optional[str] = None
    accepts_terms: bool
    marketing_opt_in: bool
    profile: ProfileResponse
    created_at: Optional[str] = None


class LoginResponse(BaseModel):
    """Issued session, or a hint that the account still needs email verification."""

    message: str
    needs_verification: bool = False
    email: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user: Optional[UserResponse] = None


class MessageResponse(BaseModel):
    message: str


class LoginEventResponse(BaseModel):
    occurred_at: str
    successful: bool
    method: str
    failure_reason: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device: Optional[str] = None


class LoginHistoryResponse(BaseModel):
    events: List[LoginEventResponse]
