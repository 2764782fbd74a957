from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .models import Profile


@dataclass(slots=True)
class SignUpData:
    email: str
    password: str
    accepts_terms: bool = False
    marketing_opt_in: bool = False
    profile: Profile = field(default_factory=Profile)


@dataclass(frozen=True, slots=True)
class Credentials:
    email: str
    password: str


@dataclass(frozen=True, slots=True)
class FederatedIdentity:
    """Identity asserted by a third-party provider after it verified the user."""

    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    picture_url: Optional[str] = None
