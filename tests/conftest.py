"""Shared test fixtures.

Required settings get harmless values before anything imports config.settings.
"""

import os

os.environ.setdefault("JWT_SECRET", "test-jwt-secret-for-unit-tests-only")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_unit")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_unit")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from src.bd_common.database import get_db_session  # noqa: E402
from src.bd_gateway.auth.jwt_handler import create_access_token  # noqa: E402
from src.main import app  # noqa: E402


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints (no real DB session)."""

    async def _no_db():
        yield None

    app.dependency_overrides[get_db_session] = _no_db
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def user_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token('user-1')}"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token('admin-1', role='admin')}"}
