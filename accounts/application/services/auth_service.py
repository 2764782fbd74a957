from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import List, Optional

from ...core.clock import SystemClock
from ...domain.commands import Credentials, FederatedIdentity, SignUpData
from ...domain.errors import DuplicateEmailError
from ...domain.models import ClientContext, LoginEvent, LoginMethod, Profile, User, UserRole, UserStatus
from ...domain.ports.gateways import Clock, ContactSync, NotificationGateway, PasswordHasher
from ...domain.ports.persistence import CredentialStore
from ...domain.results import AuthErrorKind, AuthResult, LoginOutcome, UserView
from ...services.login_audit_service import LoginAuditService
from ...services.password_hasher import MAX_PASSWORD_BYTES, password_fits
from ...services.token_service import (
    EMAIL_VERIFICATION,
    PASSWORD_RESET,
    ActionTokenIssuer,
    SessionTokenIssuer,
)

logger = logging.getLogger(__name__)

ACCOUNT_RESTRICTED = "Account Restricted"
ACCOUNT_NOT_VERIFIED = "Account not verified"
INVALID_PASSWORD = "Invalid password"
ACCESS_DENIED = "Access Denied"
INVALID_OR_EXPIRED_TOKEN = "Invalid or expired token"
PASSWORD_TOO_LONG = f"Password must be at most {MAX_PASSWORD_BYTES} bytes"


class AuthService:
    """Account lifecycle: signup, verification, login, refresh and password recovery."""

    def __init__(
        self,
        *,
        users: CredentialStore,
        hasher: PasswordHasher,
        session_tokens: SessionTokenIssuer,
        action_tokens: ActionTokenIssuer,
        audit: LoginAuditService,
        notifications: NotificationGateway,
        contact_sync: Optional[ContactSync] = None,
        clock: Optional[Clock] = None,
        verification_ttl: timedelta = timedelta(days=1),
        reset_ttl: timedelta = timedelta(hours=1),
    ) -> None:
        self._users = users
        self._hasher = hasher
        self._session_tokens = session_tokens
        self._action_tokens = action_tokens
        self._audit = audit
        self._notifications = notifications
        self._contact_sync = contact_sync
        self._clock = clock or SystemClock()
        self._verification_ttl = verification_ttl
        self._reset_ttl = reset_ttl

    # ------------------------------------------------------------------
    # Registration and email verification
    # ------------------------------------------------------------------
    def sign_up(self, data: SignUpData, role: UserRole = UserRole.USER) -> AuthResult[UserView]:
        if not password_fits(data.password):
            return AuthResult.failure(AuthErrorKind.INVALID_CREDENTIALS, PASSWORD_TOO_LONG)
        email = _normalize_email(data.email)
        if self._users.find_by_email(email):
            return AuthResult.failure(AuthErrorKind.CONFLICT, "User with this email already exists")

        user = self._users.create(
            email=email,
            password_hash=self._hasher.hash(data.password),
            role=role,
            status=UserStatus.UNVERIFIED,
            accepts_terms=data.accepts_terms,
            marketing_opt_in=data.marketing_opt_in,
            profile=data.profile,
        )
        token = self._issue_verification_token(user)
        user.verification_token = token
        try:
            user = self._users.save(user)
        except DuplicateEmailError:
            return AuthResult.failure(AuthErrorKind.CONFLICT, "User with this email already exists")
        logger.info("Registered user %s (%s)", user.id, role.value)

        self._notifications.send_verification_email(user.email, token)
        self._sync_contact(user)
        return AuthResult.success(UserView.from_user(user))

    def verify_email(self, token: str) -> AuthResult[UserView]:
        claims = self._action_tokens.verify(token, EMAIL_VERIFICATION)
        if claims is None:
            return AuthResult.failure(AuthErrorKind.INVALID_OR_EXPIRED, INVALID_OR_EXPIRED_TOKEN)

        user = self._users.find_by_email(claims.email)
        if not user:
            return AuthResult.failure(AuthErrorKind.NOT_FOUND, "User with this email does not exist")
        if not _tokens_match(user.verification_token, token):
            return AuthResult.failure(AuthErrorKind.INVALID_OR_EXPIRED, INVALID_OR_EXPIRED_TOKEN)
        if user.status is UserStatus.INACTIVE:
            return AuthResult.failure(AuthErrorKind.RESTRICTED, ACCOUNT_RESTRICTED)

        self._users.update_fields(user.id, status=UserStatus.ACTIVE, verification_token=None)
        user.status = UserStatus.ACTIVE
        user.verification_token = None
        logger.info("Verified email for user %s", user.id)
        return AuthResult.success(UserView.from_user(user))

    def resend_verification_email(self, email: str) -> AuthResult[None]:
        user = self._users.find_by_email(_normalize_email(email))
        if not user:
            return AuthResult.failure(AuthErrorKind.NOT_FOUND, "User with this email does not exist")
        if user.status is UserStatus.ACTIVE:
            return AuthResult.failure(AuthErrorKind.CONFLICT, "Email already verified")
        if user.status is UserStatus.INACTIVE:
            return AuthResult.failure(AuthErrorKind.RESTRICTED, ACCOUNT_RESTRICTED)

        token = self._issue_verification_token(user)
        self._users.update_fields(user.id, verification_token=token)
        self._notifications.send_verification_email(user.email, token)
        return AuthResult.success()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    def login(self, credentials: Credentials, client: Optional[ClientContext] = None) -> AuthResult[LoginOutcome]:
        user = self._users.find_by_email(_normalize_email(credentials.email))
        if not user:
            return AuthResult.failure(AuthErrorKind.NOT_FOUND, "User with this email does not exist")

        method = LoginMethod.CREDENTIALS
        if user.status is UserStatus.INACTIVE:
            self._audit.record(user, False, method, ACCOUNT_RESTRICTED, client)
            return AuthResult.failure(AuthErrorKind.RESTRICTED, ACCOUNT_RESTRICTED)

        if user.status is UserStatus.UNVERIFIED:
            self._audit.record(user, False, method, ACCOUNT_NOT_VERIFIED, client)
            return AuthResult.success(LoginOutcome.verification_required(user.email))

        if user.is_federated_only or not self._hasher.verify(credentials.password, user.password_hash):
            self._audit.record(user, False, method, INVALID_PASSWORD, client)
            return AuthResult.failure(AuthErrorKind.INVALID_CREDENTIALS, INVALID_PASSWORD)

        return AuthResult.success(self._complete_login(user, method, client))

    def refresh_tokens(self, refresh_token: str) -> AuthResult[LoginOutcome]:
        claims = self._session_tokens.decode_refresh(refresh_token)
        if claims is None:
            return AuthResult.failure(AuthErrorKind.FORBIDDEN, ACCESS_DENIED)

        user = self._users.find_by_id(claims.sub)
        if (
            not user
            or user.status is UserStatus.INACTIVE
            or claims.ver != user.session_version
        ):
            return AuthResult.failure(AuthErrorKind.FORBIDDEN, ACCESS_DENIED)

        tokens = self._session_tokens.issue_pair(user.id, user.role, user.session_version)
        return AuthResult.success(LoginOutcome(user=UserView.from_user(user), tokens=tokens))

    def google_login(
        self, identity: FederatedIdentity, client: Optional[ClientContext] = None
    ) -> AuthResult[LoginOutcome]:
        email = _normalize_email(identity.email)
        user = self._users.find_by_email(email) or self._create_federated_user(email, identity)

        method = LoginMethod.FEDERATED
        if user.status is UserStatus.INACTIVE:
            self._audit.record(user, False, method, ACCOUNT_RESTRICTED, client)
            return AuthResult.failure(AuthErrorKind.RESTRICTED, ACCOUNT_RESTRICTED)

        if user.status is UserStatus.UNVERIFIED:
            # the identity provider has already verified this address
            self._users.update_fields(user.id, status=UserStatus.ACTIVE, verification_token=None)
            user.status = UserStatus.ACTIVE
            user.verification_token = None

        return AuthResult.success(self._complete_login(user, method, client))

    def authenticate(self, access_token: str) -> AuthResult[User]:
        """Resolve the user behind an access token."""
        claims = self._session_tokens.decode_access(access_token)
        if claims is None:
            return AuthResult.failure(AuthErrorKind.FORBIDDEN, ACCESS_DENIED)
        user = self._users.find_by_id(claims.sub)
        if not user or not user.is_active or claims.ver != user.session_version:
            return AuthResult.failure(AuthErrorKind.FORBIDDEN, ACCESS_DENIED)
        return AuthResult.success(user)

    # ------------------------------------------------------------------
    # Password recovery
    # ------------------------------------------------------------------
    def forgot_password(self, email: str) -> AuthResult[None]:
        user = self._users.find_by_email(_normalize_email(email))
        if not user:
            return AuthResult.failure(AuthErrorKind.NOT_FOUND, "User with this email does not exist")

        token = self._action_tokens.issue(user.id, user.email, PASSWORD_RESET, self._reset_ttl)
        expires_at = self._clock.now() + self._reset_ttl
        self._users.update_fields(user.id, reset_token=token, reset_token_expires_at=expires_at)
        self._notifications.send_password_reset_email(user.email, token)
        logger.info("Password reset requested for user %s", user.id)
        return AuthResult.success()

    def reset_password(self, token: str, new_password: str) -> AuthResult[None]:
        if not password_fits(new_password):
            return AuthResult.failure(AuthErrorKind.INVALID_CREDENTIALS, PASSWORD_TOO_LONG)
        claims = self._action_tokens.verify(token, PASSWORD_RESET)
        if claims is None:
            return AuthResult.failure(AuthErrorKind.INVALID_OR_EXPIRED, INVALID_OR_EXPIRED_TOKEN)

        user = self._users.find_by_reset_token(claims.sub, token)
        if not user:
            return AuthResult.failure(AuthErrorKind.INVALID_OR_EXPIRED, INVALID_OR_EXPIRED_TOKEN)
        if not user.reset_token_expires_at or user.reset_token_expires_at <= self._clock.now():
            return AuthResult.failure(AuthErrorKind.INVALID_OR_EXPIRED, INVALID_OR_EXPIRED_TOKEN)

        self._users.update_fields(
            user.id,
            password_hash=self._hasher.hash(new_password),
            reset_token=None,
            reset_token_expires_at=None,
            session_version=user.session_version + 1,
        )
        logger.info("Password reset completed for user %s", user.id)
        return AuthResult.success()

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------
    def get_user(self, user_id: str) -> AuthResult[UserView]:
        user = self._users.find_by_id(user_id)
        if not user:
            return AuthResult.failure(AuthErrorKind.NOT_FOUND, "User not found")
        return AuthResult.success(UserView.from_user(user))

    def deactivate_user(self, user_id: str) -> AuthResult[UserView]:
        user = self._users.find_by_id(user_id)
        if not user:
            return AuthResult.failure(AuthErrorKind.NOT_FOUND, "User not found")

        user.status = UserStatus.INACTIVE
        user.session_version += 1
        self._users.update_fields(user.id, status=user.status, session_version=user.session_version)
        logger.info("Deactivated user %s", user.id)
        return AuthResult.success(UserView.from_user(user))

    def login_history(self, user_id: str, limit: int = 50) -> List[LoginEvent]:
        return self._audit.history(user_id, limit)

    def ensure_default_admin(self, email: Optional[str], password: Optional[str]) -> Optional[User]:
        if not email or not password:
            return None
        email_clean = _normalize_email(email)
        existing = self._users.find_by_email(email_clean)
        if existing:
            return existing
        logger.info("Creating default administrator account for %s", email_clean)
        admin = self._users.create(
            email=email_clean,
            password_hash=self._hasher.hash(password),
            role=UserRole.ADMIN,
            status=UserStatus.ACTIVE,
            accepts_terms=True,
        )
        return self._users.save(admin)

    # ------------------------------------------------------------------
    def _complete_login(self, user: User, method: LoginMethod, client: Optional[ClientContext]) -> LoginOutcome:
        # last_login_at and the audit row are separate writes; the audit row
        # is always written before tokens leave the service.
        now = self._clock.now()
        self._users.update_fields(user.id, last_login_at=now)
        user.last_login_at = now
        self._audit.record(user, True, method, client=client)
        tokens = self._session_tokens.issue_pair(user.id, user.role, user.session_version)
        return LoginOutcome(user=UserView.from_user(user), tokens=tokens)

    def _create_federated_user(self, email: str, identity: FederatedIdentity) -> User:
        user = self._users.create(
            email=email,
            password_hash=None,
            role=UserRole.USER,
            status=UserStatus.ACTIVE,
            profile=Profile(
                first_name=identity.first_name,
                last_name=identity.last_name,
                picture_url=identity.picture_url,
            ),
        )
        try:
            user = self._users.save(user)
        except DuplicateEmailError:
            # registered concurrently; use the stored record
            existing = self._users.find_by_email(email)
            if existing is None:
                raise
            return existing
        logger.info("Created federated user %s", user.id)
        return user

    def _issue_verification_token(self, user: User) -> str:
        return self._action_tokens.issue(user.id, user.email, EMAIL_VERIFICATION, self._verification_ttl)

    def _sync_contact(self, user: User) -> None:
        if self._contact_sync is None:
            return
        payload = {
            "email": user.email,
            "firstname": user.profile.first_name,
            "lastname": user.profile.last_name,
            "company": user.profile.company,
            "jobtitle": user.profile.job_title,
            "phone": user.profile.phone,
            "country": user.profile.country,
            "marketing_opt_in": user.marketing_opt_in,
        }
        try:
            self._contact_sync.create_contact(payload)
        except Exception:  # best-effort integration
            logger.exception("CRM contact sync failed for user %s; continuing signup", user.id)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _tokens_match(stored: Optional[str], presented: str) -> bool:
    if not stored or not presented:
        return False
    return secrets.compare_digest(stored.encode("utf-8"), presented.encode("utf-8"))
