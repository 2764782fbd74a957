from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Protocol

from ..models import LoginEvent, LoginMethod, User


class CredentialStore(Protocol):
    """Abstract storage for user records and their lifecycle state."""

    def find_by_email(self, email: str) -> Optional[User]:
        ...

    def find_by_id(self, user_id: str) -> Optional[User]:
        ...

    def find_by_reset_token(self, user_id: str, token: str) -> Optional[User]:
        ...

    def create(self, **fields: Any) -> User:
        ...

    def save(self, user: User) -> User:
        ...

    def update_fields(self, user_id: str, **fields: Any) -> None:
        ...


class LoginEventRepository(Protocol):
    """Append-only storage for login attempts."""

    def append(
        self,
        user_id: str,
        occurred_at: datetime,
        successful: bool,
        method: LoginMethod,
        failure_reason: Optional[str],
        ip_address: Optional[str],
        user_agent: Optional[str],
        device: Optional[str],
    ) -> LoginEvent:
        ...

    def list_for_user(self, user_id: str, limit: int) -> List[LoginEvent]:
        ...
