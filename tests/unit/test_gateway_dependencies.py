"""Unit tests for the auth dependencies."""

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from src.bd_common.errors import ForbiddenError
from src.bd_gateway.auth.dependencies import (
    CurrentUser,
    ensure_self_or_admin,
    get_current_user,
    require_admin,
)
from src.bd_gateway.auth.jwt_handler import create_access_token


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestGetCurrentUser:
    async def test_valid_token(self) -> None:
        user = await get_current_user(_bearer(create_access_token("user-1", role="admin")))
        assert user == CurrentUser(user_id="user-1", role="admin")
        assert user.is_admin

    async def test_missing_credentials_is_401(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(None)
        assert exc_info.value.status_code == 401
        assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}

    async def test_invalid_token_is_401(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(_bearer("garbage"))
        assert exc_info.value.status_code == 401


class TestRequireAdmin:
    async def test_admin_passes(self) -> None:
        admin = CurrentUser(user_id="a", role="admin")
        assert await require_admin(admin) is admin

    async def test_user_forbidden(self) -> None:
        with pytest.raises(ForbiddenError):
            await require_admin(CurrentUser(user_id="u"))


class TestEnsureSelfOrAdmin:
    def test_self_allowed(self) -> None:
        ensure_self_or_admin(CurrentUser(user_id="u"), "u")

    def test_admin_allowed_for_anyone(self) -> None:
        ensure_self_or_admin(CurrentUser(user_id="a", role="admin"), "u")

    def test_other_user_forbidden(self) -> None:
        with pytest.raises(ForbiddenError):
            ensure_self_or_admin(CurrentUser(user_id="u"), "someone-else")
