"""API router for account authentication."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, status

from ....application.services.auth_service import AuthService
from ....core.dependencies import get_auth_service
from ....domain.commands import Credentials, FederatedIdentity, SignUpData
from ....domain.models import ClientContext, Profile, User
from ....domain.results import LoginOutcome, UserView
from ...api.dependencies import get_client_context, get_current_user
from ...api.errors import unwrap
from ...api.schemas.auth import (
    EmailRequest,
    GoogleLoginRequest,
    LoginEventResponse,
    LoginHistoryResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RefreshRequest,
    ResetPasswordRequest,
    SignUpRequest,
    TokenRequest,
    UserResponse,
)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def sign_up(
    payload: SignUpRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Register a new account and send the verification email."""
    data = SignUpData(
        email=payload.email,
        password=payload.password,
        accepts_terms=payload.accepts_terms,
        marketing_opt_in=payload.marketing_opt_in,
        profile=Profile(
            first_name=payload.first_name,
            last_name=payload.last_name,
            company=payload.company,
            job_title=payload.job_title,
            phone=payload.phone,
            country=payload.country,
        ),
    )
    return _user_response(unwrap(auth_service.sign_up(data)))


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
    client: ClientContext = Depends(get_client_context),
) -> LoginResponse:
    outcome = unwrap(auth_service.login(Credentials(email=payload.email, password=payload.password), client))
    return _login_response(outcome)


@router.post("/refresh", response_model=LoginResponse)
def refresh(
    payload: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    return _login_response(unwrap(auth_service.refresh_tokens(payload.refresh_token)))


@router.post("/google", response_model=LoginResponse)
def google_login(
    payload: GoogleLoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
    client: ClientContext = Depends(get_client_context),
) -> LoginResponse:
    identity = FederatedIdentity(
        email=payload.email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        picture_url=payload.picture_url,
    )
    return _login_response(unwrap(auth_service.google_login(identity, client)))


@router.post("/verify-email", response_model=MessageResponse)
def verify_email(
    payload: TokenRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    unwrap(auth_service.verify_email(payload.token))
    return MessageResponse(message="Email verified successfully")


@router.post("/resend-verification", response_model=MessageResponse)
def resend_verification(
    payload: EmailRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    unwrap(auth_service.resend_verification_email(payload.email))
    return MessageResponse(message="Verification email sent")


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    payload: EmailRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    unwrap(auth_service.forgot_password(payload.email))
    return MessageResponse(message="Password reset email sent")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    payload: ResetPasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    unwrap(auth_service.reset_password(payload.token, payload.new_password))
    return MessageResponse(message="Password updated successfully")


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)) -> UserResponse:
    return _user_response(UserView.from_user(user))


@router.get("/me/logins", response_model=LoginHistoryResponse)
def my_logins(
    limit: int = Query(default=20, ge=1, le=200),
    user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginHistoryResponse:
    events = auth_service.login_history(user.id, limit)
    return LoginHistoryResponse(
        events=[
            LoginEventResponse(
                occurred_at=event.occurred_at.replace(microsecond=0).isoformat(),
                successful=event.successful,
                method=event.method.value,
                failure_reason=event.failure_reason,
                ip_address=event.ip_address,
                user_agent=event.user_agent,
                device=event.device,
            )
            for event in events
        ]
    )


def _user_response(view: UserView) -> UserResponse:
    return UserResponse(**asdict(view))


def _login_response(outcome: LoginOutcome) -> LoginResponse:
    if outcome.needs_verification:
        return LoginResponse(
            message="Account not verified",
            needs_verification=True,
            email=outcome.email,
        )
    return LoginResponse(
        message="Login successful",
        access_token=outcome.tokens.access_token,
        refresh_token=outcome.tokens.refresh_token,
        token_type=outcome.tokens.token_type,
        expires_in=outcome.tokens.expires_in,
        user=_user_response(outcome.user),
    )
