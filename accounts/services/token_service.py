"""JWT issuance for session tokens and single-use action tokens."""

import logging
import uuid
from datetime import timedelta
from typing import Literal, Optional

import jwt
from pydantic import BaseModel, ValidationError

from accounts.core.clock import SystemClock
from accounts.domain.models.tokens import TokenPair
from accounts.domain.models.user import UserRole
from accounts.domain.ports.gateways import Clock

logger = logging.getLogger(__name__)

EMAIL_VERIFICATION = "email_verification"
PASSWORD_RESET = "password_reset"


class SessionClaims(BaseModel):
    """Claims carried by access and refresh tokens."""

    sub: str
    role: UserRole
    ver: int
    typ: Literal["access", "refresh"]
    iat: int
    exp: int
    jti: str


class ActionClaims(BaseModel):
    """Claims carried by email verification and password reset tokens."""

    sub: str
    email: str
    purpose: Literal["email_verification", "password_reset"]
    iat: int
    exp: int
    jti: str


class SessionTokenIssuer:
    """Signs access and refresh tokens with independent secrets and lifetimes."""

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_exp_minutes: int = 15,
        refresh_exp_minutes: int = 60 * 24 * 7,
        algorithm: str = "HS256",
        clock: Optional[Clock] = None,
    ) -> None:
        if not access_secret or not refresh_secret:
            raise RuntimeError("Session token secrets must be configured.")
        if access_secret == refresh_secret:
            logger.warning("Access and refresh tokens share a secret. Configure distinct secrets in production.")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._access_ttl = timedelta(minutes=access_exp_minutes)
        self._refresh_ttl = timedelta(minutes=refresh_exp_minutes)
        self._algorithm = algorithm
        self._clock = clock or SystemClock()

    @property
    def access_expires_in(self) -> int:
        return int(self._access_ttl.total_seconds())

    def issue_pair(self, user_id: str, role: UserRole, session_version: int = 0) -> TokenPair:
        access_token = self._sign(user_id, role, session_version, "access", self._access_ttl, self._access_secret)
        refresh_token = self._sign(user_id, role, session_version, "refresh", self._refresh_ttl, self._refresh_secret)
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.access_expires_in,
        )

    def decode_access(self, token: str) -> Optional[SessionClaims]:
        return self._decode(token, self._access_secret, "access")

    def decode_refresh(self, token: str) -> Optional[SessionClaims]:
        return self._decode(token, self._refresh_secret, "refresh")

    def _sign(
        self,
        user_id: str,
        role: UserRole,
        session_version: int,
        token_type: str,
        ttl: timedelta,
        secret: str,
    ) -> str:
        now = self._clock.now()
        payload = {
            "sub": user_id,
            "role": UserRole(role).value,
            "ver": session_version,
            "typ": token_type,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, secret, algorithm=self._algorithm)

    def _decode(self, token: str, secret: str, token_type: str) -> Optional[SessionClaims]:
        if not token:
            return None
        try:
            payload = jwt.decode(token, secret, algorithms=[self._algorithm])
            claims = SessionClaims(**payload)
        except (jwt.InvalidTokenError, ValidationError, TypeError):
            return None

        if claims.typ != token_type:
            return None
        # The signature check above already rejects expired tokens; the clock
        # comparison keeps the decision consistent with the injected clock.
        if claims.exp <= int(self._clock.now().timestamp()):
            return None
        return claims


class ActionTokenIssuer:
    """Signs single-use tokens for email verification and password reset."""

    def __init__(self, secret: str, algorithm: str = "HS256", clock: Optional[Clock] = None) -> None:
        if not secret:
            raise RuntimeError("Action token secret must be configured.")
        self._secret = secret
        self._algorithm = algorithm
        self._clock = clock or SystemClock()

    def issue(self, subject: str, email: str, purpose: str, ttl: timedelta) -> str:
        now = self._clock.now()
        payload = {
            "sub": subject,
            "email": email,
            "purpose": purpose,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str, purpose: str) -> Optional[ActionClaims]:
        """Return the claims, or None when the token is invalid or expired."""
        if not token:
            return None
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
            claims = ActionClaims(**payload)
        except (jwt.InvalidTokenError, ValidationError, TypeError):
            return None

        if claims.purpose != purpose:
            return None
        if claims.exp <= int(self._clock.now().timestamp()):
            return None
        return claims
