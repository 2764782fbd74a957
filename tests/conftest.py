from datetime import datetime, timedelta, timezone

import pytest

from accounts.application.services.auth_service import AuthService
from accounts.domain.commands import SignUpData
from accounts.domain.errors import EmailDeliveryError
from accounts.infrastructure.repositories.login_event_repository import SQLiteLoginEventRepository
from accounts.infrastructure.repositories.user_repository import UserRepository
from accounts.services.login_audit_service import LoginAuditService
from accounts.services.password_hasher import BcryptPasswordHasher
from accounts.services.token_service import ActionTokenIssuer, SessionTokenIssuer

ACCESS_SECRET = "test-access-secret-0123456789abcdef"
REFRESH_SECRET = "test-refresh-secret-0123456789abcdef"
ACTION_SECRET = "test-action-secret-0123456789abcdef"


class FakeClock:
    def __init__(self, start=None):
        self.current = start or datetime.now(timezone.utc)

    def now(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


class RecordingNotifications:
    def __init__(self):
        self.verification_emails = []
        self.reset_emails = []
        self.fail = False

    def send_verification_email(self, to_email, token):
        if self.fail:
            raise EmailDeliveryError("smtp down")
        self.verification_emails.append((to_email, token))

    def send_password_reset_email(self, to_email, token):
        if self.fail:
            raise EmailDeliveryError("smtp down")
        self.reset_emails.append((to_email, token))


class RecordingContactSync:
    def __init__(self):
        self.contacts = []
        self.error = None

    def create_contact(self, payload):
        if self.error is not None:
            raise self.error
        self.contacts.append(payload)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifications():
    return RecordingNotifications()


@pytest.fixture
def contact_sync():
    return RecordingContactSync()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "accounts.db"


@pytest.fixture
def users(db_path):
    return UserRepository(db_path)


@pytest.fixture
def login_events(db_path):
    return SQLiteLoginEventRepository(db_path)


@pytest.fixture
def hasher():
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def session_tokens(clock):
    return SessionTokenIssuer(ACCESS_SECRET, REFRESH_SECRET, clock=clock)


@pytest.fixture
def action_tokens(clock):
    return ActionTokenIssuer(ACTION_SECRET, clock=clock)


@pytest.fixture
def auth_service(users, login_events, hasher, session_tokens, action_tokens, notifications, contact_sync, clock):
    return AuthService(
        users=users,
        hasher=hasher,
        session_tokens=session_tokens,
        action_tokens=action_tokens,
        audit=LoginAuditService(login_events, clock=clock),
        notifications=notifications,
        contact_sync=contact_sync,
        clock=clock,
    )


@pytest.fixture
def register_active(auth_service, users):
    """Sign up and verify an account, returning the stored user."""

    def _register(email="viewer@example.com", password="P@ssw0rd!"):
        result = auth_service.sign_up(SignUpData(email=email, password=password))
        assert result.ok
        stored = users.find_by_email(email)
        assert auth_service.verify_email(stored.verification_token).ok
        return users.find_by_email(email)

    return _register


