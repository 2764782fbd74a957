from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging
from ..application.services.auth_service import AuthService
from ..infrastructure.repositories.login_event_repository import SQLiteLoginEventRepository
from ..infrastructure.repositories.user_repository import UserRepository
from ..presentation.api.routers import admin as admin_router
from ..presentation.api.routers import auth as auth_router
from ..services.contact_sync_service import ContactSyncService
from ..services.email_service import EmailService
from ..services.login_audit_service import LoginAuditService
from ..services.password_hasher import BcryptPasswordHasher
from ..services.token_service import ActionTokenIssuer, SessionTokenIssuer

logger = logging.getLogger(__name__)


def create_application(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(title="Reelhouse Accounts", lifespan=_create_lifespan(settings))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router.router)
    app.include_router(admin_router.router)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        container: ApplicationContainer = app.state.container  # type: ignore[attr-defined]
        return {
            "ok": True,
            "email_enabled": container.email_service.enabled,
            "crm_enabled": container.contact_sync_service.enabled,
        }

    return app


def build_container(settings: Settings) -> ApplicationContainer:
    settings.database_path.parent.mkdir(parents=True, exist_ok=True)
    user_repository = UserRepository(settings.database_path)
    login_event_repository = SQLiteLoginEventRepository(settings.database_path)
    email_service = EmailService(
        base_url=settings.frontend_base_url,
        smtp_host=settings.smtp_host,
        smtp_port=settings.smtp_port,
        smtp_username=settings.smtp_username,
        smtp_password=settings.smtp_password,
        from_email=settings.smtp_from_email,
        verification_exp_hours=settings.verification_token_exp_hours,
        reset_exp_minutes=settings.reset_token_exp_minutes,
    )
    contact_sync_service = ContactSyncService(
        contacts_url=settings.crm_contacts_url,
        api_key=settings.crm_api_key,
        timeout_seconds=settings.crm_timeout_seconds,
    )
    auth_service = AuthService(
        users=user_repository,
        hasher=BcryptPasswordHasher(rounds=settings.bcrypt_rounds),
        session_tokens=SessionTokenIssuer(
            access_secret=settings.access_token_secret,
            refresh_secret=settings.refresh_token_secret,
            access_exp_minutes=settings.access_token_exp_minutes,
            refresh_exp_minutes=settings.refresh_token_exp_minutes,
            algorithm=settings.jwt_algorithm,
        ),
        action_tokens=ActionTokenIssuer(settings.action_token_secret, algorithm=settings.jwt_algorithm),
        audit=LoginAuditService(login_event_repository),
        notifications=email_service,
        contact_sync=contact_sync_service,
        verification_ttl=timedelta(hours=settings.verification_token_exp_hours),
        reset_ttl=timedelta(minutes=settings.reset_token_exp_minutes),
    )
    return ApplicationContainer(
        settings=settings,
        user_repository=user_repository,
        login_event_repository=login_event_repository,
        email_service=email_service,
        contact_sync_service=contact_sync_service,
        auth_service=auth_service,
    )


def _create_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        settings.warn_on_default_secrets()
        container = build_container(settings)
        container.auth_service.ensure_default_admin(
            settings.admin_default_email, settings.admin_default_password
        )
        app.state.container = container  # type: ignore[attr-defined]
        logger.info("Accounts service ready (database=%s)", settings.database_path)
        yield

    return lifespan
