"""Domain models for the accounts service."""

from .login_event import ClientContext, LoginEvent, LoginMethod
from .profile import Profile
from .tokens import TokenPair
from .user import User, UserRole, UserStatus

__all__ = [
    "ClientContext",
    "LoginEvent",
    "LoginMethod",
    "Profile",
    "TokenPair",
    "User",
    "UserRole",
    "UserStatus",
]
