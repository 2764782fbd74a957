from dataclasses import asdict

from fastapi import APIRouter, Depends

from ....application.services.auth_service import AuthService
from ....core.dependencies import get_auth_service
from ....domain.models import User
from ...api.dependencies import require_admin_user
from ...api.errors import unwrap
from ...api.schemas.auth import UserResponse

router = APIRouter(prefix="/api/admin", tags=["Account Administration"])


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(
    user_id: str,
    _: User = Depends(require_admin_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    return UserResponse(**asdict(unwrap(auth_service.get_user(user_id))))


@router.post("/users/{user_id}/deactivate", response_model=UserResponse)
def deactivate_user(
    user_id: str,
    _: User = Depends(require_admin_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Restrict an account. Inactive accounts cannot log in or refresh sessions."""
    view = unwrap(auth_service.deactivate_user(user_id))
    return UserResponse(**asdict(view))
