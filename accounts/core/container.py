from dataclasses import dataclass

from ..application.services.auth_service import AuthService
from ..infrastructure.repositories.login_event_repository import SQLiteLoginEventRepository
from ..infrastructure.repositories.user_repository import UserRepository
from ..services.contact_sync_service import ContactSyncService
from ..services.email_service import EmailService
from .config import Settings


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    user_repository: UserRepository
    login_event_repository: SQLiteLoginEventRepository
    email_service: EmailService
    contact_sync_service: ContactSyncService
    auth_service: AuthService
