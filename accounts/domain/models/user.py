"""User domain model for platform accounts."""

from datetime import datetime
from enum import Enum
from typing import Optional

from .profile import Profile


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class UserStatus(str, Enum):
    UNVERIFIED = "unverified"
    ACTIVE = "active"
    INACTIVE = "inactive"


class User:
    """
    User entity representing a platform account.

    Attributes:
        id: Unique identifier (uuid4 string)
        email: User email address (unique, lower-cased)
        password_hash: Hashed password, None for accounts created by federated login
        role: Role carried in issued session tokens
        status: Lifecycle state (unverified -> active, any -> inactive)
        verification_token: Pending single-use email verification token
        reset_token: Pending single-use password reset token
        reset_token_expires_at: Stored expiry of the reset token
        last_login_at: Timestamp of the last successful login
        accepts_terms: Consent to the terms of service
        marketing_opt_in: Consent to marketing communication
        session_version: Bumped to invalidate every previously issued session token
        profile: Linked 1:1 profile
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: str,
        email: str,
        password_hash: Optional[str] = None,
        role: UserRole = UserRole.USER,
        status: UserStatus = UserStatus.UNVERIFIED,
        verification_token: Optional[str] = None,
        reset_token: Optional[str] = None,
        reset_token_expires_at: Optional[datetime] = None,
        last_login_at: Optional[datetime] = None,
        accepts_terms: bool = False,
        marketing_opt_in: bool = False,
        session_version: int = 0,
        profile: Optional[Profile] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        persisted: bool = False,
    ):
        self.id = id
        self.email = email
        self.password_hash = password_hash
        self.role = UserRole(role)
        self.status = UserStatus(status)
        self.verification_token = verification_token
        self.reset_token = reset_token
        self.reset_token_expires_at = reset_token_expires_at
        self.last_login_at = last_login_at
        self.accepts_terms = accepts_terms
        self.marketing_opt_in = marketing_opt_in
        self.session_version = session_version
        self.profile = profile or Profile()
        self.created_at = created_at
        self.updated_at = updated_at
        self.persisted = persisted

    @property
    def is_active(self) -> bool:
        return self.status is UserStatus.ACTIVE

    @property
    def is_federated_only(self) -> bool:
        return self.password_hash is None

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role.value} status={self.status.value}>"
