from typing import TypeVar

from fastapi import HTTPException, status

from ...domain.results import AuthErrorKind, AuthResult

T = TypeVar("T")

_STATUS_BY_KIND = {
    AuthErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AuthErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    AuthErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    AuthErrorKind.RESTRICTED: status.HTTP_403_FORBIDDEN,
    AuthErrorKind.INVALID_CREDENTIALS: status.HTTP_400_BAD_REQUEST,
    AuthErrorKind.INVALID_OR_EXPIRED: status.HTTP_400_BAD_REQUEST,
}


def unwrap(result: AuthResult[T]) -> T:
    """Return the result value or raise the HTTP error matching its kind."""
    if result.error is not None:
        raise HTTPException(status_code=_STATUS_BY_KIND[result.error.kind], detail=result.error.message)
    return result.value
