"""FastAPI dependencies: get_current_user / require_admin.

Usage in any protected router:
    from src.bd_gateway.auth.dependencies import CurrentUser, get_current_user

    @router.get("/protected")
    async def protected(user: CurrentUser = Depends(get_current_user)):
        ...
"""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.bd_common.enums import UserRole
from src.bd_common.errors import ForbiddenError, InvalidCredentialsError
from src.bd_gateway.auth.jwt_handler import decode_access_token

_bearer_scheme = HTTPBearer(auto_error=False)

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Authentication required",
    headers={"WWW-Authenticate": "Bearer"},
)


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    role: str = UserRole.USER.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> CurrentUser:
    """Resolve the verified caller identity from the Bearer token.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    """
    if credentials is None or not credentials.credentials:
        raise _CREDENTIALS_EXCEPTION
    try:
        payload = decode_access_token(credentials.credentials)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION
    return CurrentUser(user_id=str(user_id), role=payload.get("role") or UserRole.USER.value)


async def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """Raises HTTP 403 (ForbiddenError) unless the caller carries the admin role."""
    if not current_user.is_admin:
        raise ForbiddenError("Admin role required")
    return current_user


def ensure_self_or_admin(current_user: CurrentUser, target_user_id: str) -> None:
    """Self-serve check: the caller may act on its own id; admins on any id."""
    if current_user.user_id != target_user_id and not current_user.is_admin:
        raise ForbiddenError("Cannot modify another user's balance")
