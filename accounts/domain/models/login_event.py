from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class LoginMethod(str, Enum):
    CREDENTIALS = "credentials"
    FEDERATED = "federated"


@dataclass(frozen=True, slots=True)
class ClientContext:
    """Request metadata captured alongside every login attempt."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device: Optional[str] = None


@dataclass(frozen=True, slots=True)
class LoginEvent:
    id: int
    user_id: str
    occurred_at: datetime
    successful: bool
    method: LoginMethod
    failure_reason: Optional[str]
    ip_address: Optional[str]
    user_agent: Optional[str]
    device: Optional[str]
