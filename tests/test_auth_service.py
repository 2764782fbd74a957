from dataclasses import asdict
from datetime import timedelta

import pytest

from accounts.domain.commands import Credentials, FederatedIdentity, SignUpData
from accounts.domain.errors import ContactSyncError, EmailDeliveryError
from accounts.domain.models import ClientContext, LoginMethod, Profile, UserRole, UserStatus
from accounts.domain.results import AuthErrorKind
from accounts.services.token_service import PASSWORD_RESET, ActionTokenIssuer, SessionTokenIssuer


def _sign_up(auth_service, email="a@x.com", password="P@ssw0rd", **kwargs):
    return auth_service.sign_up(SignUpData(email=email, password=password, **kwargs))


# ---------------------------------------------------------------- signup

def test_sign_up_creates_unverified_user_without_password_in_view(auth_service, users, notifications):
    result = _sign_up(
        auth_service,
        accepts_terms=True,
        profile=Profile(first_name="Ada", last_name="Lovelace", company="Analytical"),
    )

    assert result.ok
    view = result.value
    assert view.status == "unverified"
    assert view.role == "user"
    assert "password_hash" not in asdict(view)
    assert "verification_token" not in asdict(view)
    assert view.profile["first_name"] == "Ada"

    stored = users.find_by_email("a@x.com")
    assert stored.status is UserStatus.UNVERIFIED
    assert stored.verification_token
    assert stored.password_hash and stored.password_hash != "P@ssw0rd"
    assert stored.profile.company == "Analytical"
    assert notifications.verification_emails == [("a@x.com", stored.verification_token)]


def test_sign_up_twice_with_same_email_conflicts(auth_service, contact_sync):
    assert _sign_up(auth_service).ok

    second = _sign_up(
        auth_service,
        email="A@X.com ",
        password="different-password",
        marketing_opt_in=True,
        profile=Profile(first_name="Someone", last_name="Else"),
    )

    assert not second.ok
    assert second.error.kind is AuthErrorKind.CONFLICT
    assert len(contact_sync.contacts) == 1


def test_sign_up_with_admin_role(auth_service, users):
    result = auth_service.sign_up(SignUpData(email="staff@x.com", password="P@ssw0rd"), role=UserRole.ADMIN)

    assert result.ok
    assert users.find_by_email("staff@x.com").role is UserRole.ADMIN


def test_sign_up_survives_crm_failure(auth_service, contact_sync, users):
    contact_sync.error = ContactSyncError("crm unavailable")

    result = _sign_up(auth_service)

    assert result.ok
    assert users.find_by_email("a@x.com") is not None


def test_sign_up_propagates_email_failure(auth_service, notifications):
    notifications.fail = True

    with pytest.raises(EmailDeliveryError):
        _sign_up(auth_service)


def test_sign_up_pushes_contact_to_crm(auth_service, contact_sync):
    _sign_up(auth_service, marketing_opt_in=True, profile=Profile(first_name="Ada", country="UK"))

    assert contact_sync.contacts == [
        {
            "email": "a@x.com",
            "firstname": "Ada",
            "lastname": None,
            "company": None,
            "jobtitle": None,
            "phone": None,
            "country": "UK",
            "marketing_opt_in": True,
        }
    ]


# ---------------------------------------------------------------- verification

def test_verify_email_activates_and_clears_token(auth_service, users):
    _sign_up(auth_service)
    token = users.find_by_email("a@x.com").verification_token

    result = auth_service.verify_email(token)

    assert result.ok
    assert result.value.status == "active"
    stored = users.find_by_email("a@x.com")
    assert stored.status is UserStatus.ACTIVE
    assert stored.verification_token is None


def test_verify_email_token_is_single_use(auth_service, users):
    _sign_up(auth_service)
    token = users.find_by_email("a@x.com").verification_token
    assert auth_service.verify_email(token).ok

    again = auth_service.verify_email(token)

    assert again.error.kind is AuthErrorKind.INVALID_OR_EXPIRED


def test_verify_email_with_elapsed_ttl_keeps_status(auth_service, users, clock):
    _sign_up(auth_service)
    token = users.find_by_email("a@x.com").verification_token
    clock.advance(days=1, seconds=1)

    result = auth_service.verify_email(token)

    assert result.error.kind is AuthErrorKind.INVALID_OR_EXPIRED
    assert users.find_by_email("a@x.com").status is UserStatus.UNVERIFIED


def test_verify_email_rejects_garbage(auth_service):
    result = auth_service.verify_email("not-a-token")

    assert result.error.kind is AuthErrorKind.INVALID_OR_EXPIRED


def test_verify_email_for_unknown_email_is_not_found(auth_service, action_tokens):
    token = action_tokens.issue("ghost-id", "ghost@x.com", "email_verification", timedelta(days=1))

    result = auth_service.verify_email(token)

    assert result.error.kind is AuthErrorKind.NOT_FOUND


def test_verify_email_rejects_superseded_token(auth_service, users):
    _sign_up(auth_service)
    first = users.find_by_email("a@x.com").verification_token
    assert auth_service.resend_verification_email("a@x.com").ok

    result = auth_service.verify_email(first)

    assert result.error.kind is AuthErrorKind.INVALID_OR_EXPIRED
    assert users.find_by_email("a@x.com").status is UserStatus.UNVERIFIED


def test_resend_verification_overwrites_token_and_sends(auth_service, users, notifications):
    _sign_up(auth_service)
    first = users.find_by_email("a@x.com").verification_token

    result = auth_service.resend_verification_email("a@x.com")

    assert result.ok
    second = users.find_by_email("a@x.com").verification_token
    assert second != first
    assert notifications.verification_emails[-1] == ("a@x.com", second)


def test_resend_verification_conflicts_when_already_active(auth_service, register_active):
    register_active(email="a@x.com")

    result = auth_service.resend_verification_email("a@x.com")

    assert result.error.kind is AuthErrorKind.CONFLICT


def test_resend_verification_unknown_email(auth_service):
    assert auth_service.resend_verification_email("nobody@x.com").error.kind is AuthErrorKind.NOT_FOUND


# ---------------------------------------------------------------- login

def test_login_unknown_email_is_not_found(auth_service):
    result = auth_service.login(Credentials("nobody@x.com", "whatever"))

    assert result.error.kind is AuthErrorKind.NOT_FOUND


def test_login_inactive_user_records_one_failure_and_issues_nothing(auth_service, register_active, login_events):
    user = register_active(email="a@x.com", password="P@ssw0rd")
    auth_service.deactivate_user(user.id)

    result = auth_service.login(Credentials("a@x.com", "P@ssw0rd"), ClientContext(ip_address="10.0.0.1"))

    assert result.error.kind is AuthErrorKind.RESTRICTED
    assert result.value is None
    events = login_events.list_for_user(user.id)
    assert len(events) == 1
    assert events[0].successful is False
    assert events[0].failure_reason == "Account Restricted"
    assert events[0].ip_address == "10.0.0.1"


def test_login_unverified_user_gets_soft_response_and_one_failed_event(auth_service, users, login_events):
    _sign_up(auth_service)
    user = users.find_by_email("a@x.com")

    result = auth_service.login(Credentials("a@x.com", "P@ssw0rd"))

    assert result.ok
    assert result.value.needs_verification is True
    assert result.value.email == "a@x.com"
    assert result.value.tokens is None
    events = login_events.list_for_user(user.id)
    assert [(e.successful, e.failure_reason) for e in events] == [(False, "Account not verified")]


def test_login_wrong_password(auth_service, register_active, login_events):
    user = register_active(email="a@x.com", password="P@ssw0rd")

    result = auth_service.login(Credentials("a@x.com", "wrong"))

    assert result.error.kind is AuthErrorKind.INVALID_CREDENTIALS
    events = login_events.list_for_user(user.id)
    assert len(events) == 1
    assert events[0].failure_reason == "Invalid password"


def test_login_success_issues_tokens_and_updates_last_login(auth_service, register_active, users, login_events, session_tokens):
    user = register_active(email="a@x.com", password="P@ssw0rd")
    assert user.last_login_at is None

    client = ClientContext(ip_address="192.0.2.10", user_agent="pytest", device="desktop")
    result = auth_service.login(Credentials("A@x.com", "P@ssw0rd"), client)

    assert result.ok
    outcome = result.value
    assert outcome.needs_verification is False
    claims = session_tokens.decode_access(outcome.tokens.access_token)
    assert claims.sub == user.id
    assert claims.role is UserRole.USER
    assert outcome.user.email == "a@x.com"
    assert users.find_by_email("a@x.com").last_login_at is not None

    events = login_events.list_for_user(user.id)
    assert len(events) == 1
    event = events[0]
    assert event.successful is True
    assert event.method is LoginMethod.CREDENTIALS
    assert event.failure_reason is None
    assert (event.ip_address, event.user_agent, event.device) == ("192.0.2.10", "pytest", "desktop")


def test_login_federated_only_account_with_password_fails(auth_service, users, login_events):
    auth_service.google_login(FederatedIdentity(email="g@x.com"))
    user = users.find_by_email("g@x.com")
    assert user.is_federated_only

    result = auth_service.login(Credentials("g@x.com", "anything"))

    assert result.error.kind is AuthErrorKind.INVALID_CREDENTIALS
    latest = login_events.list_for_user(user.id)[0]
    assert (latest.successful, latest.failure_reason) == (False, "Invalid password")


# ---------------------------------------------------------------- refresh

def test_refresh_preserves_subject_and_role(auth_service, register_active, session_tokens):
    user = register_active(email="a@x.com", password="P@ssw0rd")
    tokens = auth_service.login(Credentials("a@x.com", "P@ssw0rd")).value.tokens

    result = auth_service.refresh_tokens(tokens.refresh_token)

    assert result.ok
    new_tokens = result.value.tokens
    assert new_tokens.refresh_token != tokens.refresh_token
    original = session_tokens.decode_refresh(tokens.refresh_token)
    renewed = session_tokens.decode_refresh(new_tokens.refresh_token)
    assert (renewed.sub, renewed.role) == (original.sub, original.role) == (user.id, UserRole.USER)
    assert result.value.user.id == user.id


def test_refresh_with_expired_token_is_forbidden(auth_service, register_active, session_tokens, clock):
    user = register_active(email="a@x.com")
    now = clock.current
    clock.current = now - timedelta(days=30)
    stale = session_tokens.issue_pair(user.id, user.role, user.session_version)
    clock.current = now

    result = auth_service.refresh_tokens(stale.refresh_token)

    assert result.error.kind is AuthErrorKind.FORBIDDEN
    assert result.error.message == "Access Denied"


def test_refresh_expired_by_service_clock_is_forbidden(auth_service, register_active, clock):
    register_active(email="a@x.com", password="P@ssw0rd")
    tokens = auth_service.login(Credentials("a@x.com", "P@ssw0rd")).value.tokens
    clock.advance(days=8)

    assert auth_service.refresh_tokens(tokens.refresh_token).error.kind is AuthErrorKind.FORBIDDEN


def test_refresh_with_tampered_token_is_forbidden(auth_service, register_active):
    user = register_active(email="a@x.com", password="P@ssw0rd")
    tokens = auth_service.login(Credentials("a@x.com", "P@ssw0rd")).value.tokens
    forger = SessionTokenIssuer("attacker-access-secret-0123456789", "attacker-refresh-secret-0123456789")
    forged = forger.issue_pair(user.id, UserRole.ADMIN).refresh_token

    header, _, signature = tokens.refresh_token.split(".")
    tampered = ".".join([header, forged.split(".")[1], signature])

    assert auth_service.refresh_tokens(forged).error.kind is AuthErrorKind.FORBIDDEN
    assert auth_service.refresh_tokens(tampered).error.kind is AuthErrorKind.FORBIDDEN


def test_refresh_rejects_access_token_and_garbage(auth_service, register_active):
    register_active(email="a@x.com", password="P@ssw0rd")
    tokens = auth_service.login(Credentials("a@x.com", "P@ssw0rd")).value.tokens

    assert auth_service.refresh_tokens(tokens.access_token).error.kind is AuthErrorKind.FORBIDDEN
    assert auth_service.refresh_tokens("").error.kind is AuthErrorKind.FORBIDDEN
    assert auth_service.refresh_tokens("a.b.c").error.kind is AuthErrorKind.FORBIDDEN


def test_refresh_for_unknown_subject_is_forbidden(auth_service, session_tokens):
    tokens = session_tokens.issue_pair("missing-user", UserRole.USER)

    assert auth_service.refresh_tokens(tokens.refresh_token).error.kind is AuthErrorKind.FORBIDDEN


def test_refresh_token_revoked_by_password_reset(auth_service, register_active, notifications):
    register_active(email="a@x.com", password="P@ssw0rd")
    tokens = auth_service.login(Credentials("a@x.com", "P@ssw0rd")).value.tokens
    auth_service.forgot_password("a@x.com")
    _, reset_token = notifications.reset_emails[-1]
    assert auth_service.reset_password(reset_token, "N3w-passw0rd").ok

    assert auth_service.refresh_tokens(tokens.refresh_token).error.kind is AuthErrorKind.FORBIDDEN


# ---------------------------------------------------------------- federated login

def test_google_login_creates_active_user_without_password(auth_service, users, login_events):
    identity = FederatedIdentity(email="G@x.com", first_name="Grace", last_name="Hopper", picture_url="https://img/g.png")

    result = auth_service.google_login(identity, ClientContext(ip_address="198.51.100.7"))

    assert result.ok
    assert result.value.tokens.access_token
    stored = users.find_by_email("g@x.com")
    assert stored.status is UserStatus.ACTIVE
    assert stored.password_hash is None
    assert stored.profile.first_name == "Grace"
    assert stored.last_login_at is not None
    events = login_events.list_for_user(stored.id)
    assert len(events) == 1
    assert events[0].method is LoginMethod.FEDERATED
    assert events[0].successful is True


def test_google_login_reuses_existing_account(auth_service, register_active, users):
    user = register_active(email="a@x.com")

    result = auth_service.google_login(FederatedIdentity(email="a@x.com"))

    assert result.value.user.id == user.id
    assert users.find_by_email("a@x.com").password_hash == user.password_hash


def test_google_login_activates_unverified_account(auth_service, users):
    _sign_up(auth_service)

    result = auth_service.google_login(FederatedIdentity(email="a@x.com"))

    assert result.ok
    stored = users.find_by_email("a@x.com")
    assert stored.status is UserStatus.ACTIVE
    assert stored.verification_token is None


def test_google_login_inactive_account_is_restricted(auth_service, register_active, login_events):
    user = register_active(email="a@x.com")
    auth_service.deactivate_user(user.id)

    result = auth_service.google_login(FederatedIdentity(email="a@x.com"))

    assert result.error.kind is AuthErrorKind.RESTRICTED
    events = login_events.list_for_user(user.id)
    assert [(e.successful, e.method) for e in events] == [(False, LoginMethod.FEDERATED)]


# ---------------------------------------------------------------- password recovery

def test_forgot_password_unknown_email(auth_service):
    assert auth_service.forgot_password("nobody@x.com").error.kind is AuthErrorKind.NOT_FOUND


def test_forgot_password_stores_token_and_expiry(auth_service, register_active, users, notifications, clock):
    register_active(email="a@x.com")

    assert auth_service.forgot_password("a@x.com").ok

    stored = users.find_by_email("a@x.com")
    assert notifications.reset_emails == [("a@x.com", stored.reset_token)]
    assert stored.reset_token_expires_at == clock.now() + timedelta(hours=1)


def test_reset_password_success_is_single_use(auth_service, register_active, users, notifications, hasher):
    register_active(email="a@x.com", password="P@ssw0rd")
    auth_service.forgot_password("a@x.com")
    _, token = notifications.reset_emails[-1]

    assert auth_service.reset_password(token, "N3w-passw0rd").ok

    stored = users.find_by_email("a@x.com")
    assert hasher.verify("N3w-passw0rd", stored.password_hash)
    assert stored.reset_token is None
    assert stored.reset_token_expires_at is None
    assert auth_service.reset_password(token, "Another-0ne").error.kind is AuthErrorKind.INVALID_OR_EXPIRED
    assert hasher.verify("N3w-passw0rd", users.find_by_email("a@x.com").password_hash)


def _prepare_reset(auth_service, register_active, notifications):
    user = register_active(email="a@x.com", password="P@ssw0rd")
    auth_service.forgot_password("a@x.com")
    _, token = notifications.reset_emails[-1]
    return user, token


def _assert_password_unchanged(users, hasher):
    assert hasher.verify("P@ssw0rd", users.find_by_email("a@x.com").password_hash)


def test_reset_password_fails_with_invalid_signature(auth_service, register_active, notifications, users, hasher):
    user, _ = _prepare_reset(auth_service, register_active, notifications)
    forged = ActionTokenIssuer("attacker-action-secret-0123456789").issue(
        user.id, user.email, PASSWORD_RESET, timedelta(hours=1)
    )
    users.update_fields(user.id, reset_token=forged)

    result = auth_service.reset_password(forged, "N3w-passw0rd")

    assert result.error.kind is AuthErrorKind.INVALID_OR_EXPIRED
    _assert_password_unchanged(users, hasher)


def test_reset_password_fails_when_stored_expiry_passed(auth_service, register_active, notifications, users, hasher, clock):
    user, token = _prepare_reset(auth_service, register_active, notifications)
    users.update_fields(user.id, reset_token_expires_at=clock.now() - timedelta(seconds=1))

    result = auth_service.reset_password(token, "N3w-passw0rd")

    assert result.error.kind is AuthErrorKind.INVALID_OR_EXPIRED
    _assert_password_unchanged(users, hasher)


def test_reset_password_fails_when_stored_token_differs(auth_service, register_active, notifications, users, hasher):
    user, token = _prepare_reset(auth_service, register_active, notifications)
    users.update_fields(user.id, reset_token="some-other-token")

    result = auth_service.reset_password(token, "N3w-passw0rd")

    assert result.error.kind is AuthErrorKind.INVALID_OR_EXPIRED
    _assert_password_unchanged(users, hasher)


def test_reset_password_rejects_verification_token(auth_service, users, hasher):
    _sign_up(auth_service)
    verification_token = users.find_by_email("a@x.com").verification_token

    result = auth_service.reset_password(verification_token, "N3w-passw0rd")

    assert result.error.kind is AuthErrorKind.INVALID_OR_EXPIRED
    _assert_password_unchanged(users, hasher)


def test_reset_password_after_ttl_elapsed(auth_service, register_active, notifications, users, hasher, clock):
    _, token = _prepare_reset(auth_service, register_active, notifications)
    clock.advance(hours=1, seconds=1)

    assert auth_service.reset_password(token, "N3w-passw0rd").error.kind is AuthErrorKind.INVALID_OR_EXPIRED
    _assert_password_unchanged(users, hasher)


# ---------------------------------------------------------------- administration

def test_deactivate_user_revokes_access_token(auth_service, register_active, users):
    user = register_active(email="a@x.com", password="P@ssw0rd")
    tokens = auth_service.login(Credentials("a@x.com", "P@ssw0rd")).value.tokens
    assert auth_service.authenticate(tokens.access_token).ok

    result = auth_service.deactivate_user(user.id)

    assert result.value.status == "inactive"
    assert users.find_by_id(user.id).status is UserStatus.INACTIVE
    assert auth_service.authenticate(tokens.access_token).error.kind is AuthErrorKind.FORBIDDEN


def test_deactivate_unknown_user(auth_service):
    assert auth_service.deactivate_user("missing").error.kind is AuthErrorKind.NOT_FOUND


def test_get_user_returns_view_without_secrets(auth_service, register_active):
    user = register_active(email="a@x.com")

    view = auth_service.get_user(user.id).value

    assert view.id == user.id
    assert view.status == "active"
    assert "password_hash" not in asdict(view)
    assert auth_service.get_user("missing").error.kind is AuthErrorKind.NOT_FOUND


# ---------------------------------------------------------------- password length

def test_sign_up_rejects_password_over_bcrypt_byte_limit(auth_service, users, notifications):
    # 40 characters, 80 bytes in UTF-8
    result = auth_service.sign_up(SignUpData(email="a@x.com", password="é" * 40))

    assert result.error.kind is AuthErrorKind.INVALID_CREDENTIALS
    assert users.find_by_email("a@x.com") is None
    assert notifications.verification_emails == []


def test_reset_password_rejects_password_over_bcrypt_byte_limit(auth_service, register_active, notifications, users, hasher):
    register_active(email="a@x.com", password="P@ssw0rd")
    auth_service.forgot_password("a@x.com")
    _, token = notifications.reset_emails[-1]

    result = auth_service.reset_password(token, "é" * 40)

    assert result.error.kind is AuthErrorKind.INVALID_CREDENTIALS
    stored = users.find_by_email("a@x.com")
    assert stored.reset_token == token
    assert hasher.verify("P@ssw0rd", stored.password_hash)


def test_ensure_default_admin_is_idempotent(auth_service):
    first = auth_service.ensure_default_admin("Admin@x.com", "adm1n-pass")
    second = auth_service.ensure_default_admin("admin@x.com", "other")

    assert first.role is UserRole.ADMIN
    assert first.status is UserStatus.ACTIVE
    assert second.id == first.id
    assert auth_service.ensure_default_admin(None, None) is None


# ---------------------------------------------------------------- end to end

def test_signup_verify_login_flow(auth_service, users, login_events):
    signup = auth_service.sign_up(SignUpData(email="a@x.com", password="P@ssw0rd"))
    assert signup.value.status == "unverified"

    first_login = auth_service.login(Credentials("a@x.com", "P@ssw0rd"))
    assert first_login.value.needs_verification

    token = users.find_by_email("a@x.com").verification_token
    assert auth_service.verify_email(token).ok
    assert users.find_by_email("a@x.com").status is UserStatus.ACTIVE

    second_login = auth_service.login(Credentials("a@x.com", "P@ssw0rd"))
    assert second_login.value.tokens is not None

    stored = users.find_by_email("a@x.com")
    assert stored.last_login_at is not None
    events = login_events.list_for_user(stored.id)
    assert [e.successful for e in events] == [True, False]
    assert [h.successful for h in auth_service.login_history(stored.id)] == [True, False]
