"""Tagged results returned by the authentication flows."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Optional, TypeVar

from .models import TokenPair, User

T = TypeVar("T")


class AuthErrorKind(str, Enum):
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    INVALID_OR_EXPIRED = "invalid_or_expired"
    INVALID_CREDENTIALS = "invalid_credentials"
    RESTRICTED = "restricted"


@dataclass(frozen=True, slots=True)
class AuthError:
    kind: AuthErrorKind
    message: str


@dataclass(frozen=True)
class AuthResult(Generic[T]):
    """Either a value or an :class:`AuthError`, never both."""

    value: Optional[T] = None
    error: Optional[AuthError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "AuthResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: AuthErrorKind, message: str) -> "AuthResult[T]":
        return cls(error=AuthError(kind=kind, message=message))


@dataclass(frozen=True, slots=True)
class UserView:
    """Outbound representation of a user. Never carries secrets."""

    id: str
    email: str
    role: str
    status: str
    last_login_at: Optional[str]
    accepts_terms: bool
    marketing_opt_in: bool
    profile: dict = field(default_factory=dict)
    created_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserView":
        return cls(
            id=user.id,
            email=user.email,
            role=user.role.value,
            status=user.status.value,
            last_login_at=_isoformat(user.last_login_at),
            accepts_terms=user.accepts_terms,
            marketing_opt_in=user.marketing_opt_in,
            profile=user.profile.to_dict(),
            created_at=_isoformat(user.created_at),
        )


@dataclass(frozen=True, slots=True)
class LoginOutcome:
    """Successful login, or the soft "needs verification" answer for unverified accounts."""

    user: Optional[UserView] = None
    tokens: Optional[TokenPair] = None
    needs_verification: bool = False
    email: Optional[str] = None

    @classmethod
    def verification_required(cls, email: str) -> "LoginOutcome":
        return cls(needs_verification=True, email=email)


def _isoformat(value) -> Optional[str]:
    return value.replace(microsecond=0).isoformat() if value else None
