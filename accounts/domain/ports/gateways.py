from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Protocol


class PasswordHasher(Protocol):
    """One-way password hashing capability."""

    def hash(self, plaintext: str) -> str:
        ...

    def verify(self, plaintext: str, password_hash: str) -> bool:
        ...


class NotificationGateway(Protocol):
    """Outbound account emails."""

    def send_verification_email(self, to_email: str, token: str) -> None:
        ...

    def send_password_reset_email(self, to_email: str, token: str) -> None:
        ...


class ContactSync(Protocol):
    """Third-party CRM that mirrors newly registered contacts."""

    def create_contact(self, payload: Dict[str, Any]) -> None:
        ...


class Clock(Protocol):
    def now(self) -> datetime:
        ...
