"""Integration-test fixtures.

Pre-condition: PostgreSQL and Redis reachable at the configured URLs, and
``alembic upgrade head`` applied. Every test here is skipped otherwise.

All integration tests share a single event loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from src.bd_common.database import async_session_factory, engine
from src.bd_common.redis_client import get_redis
from src.bd_gateway.auth.jwt_handler import create_access_token
from src.main import app


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def services_ready() -> None:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1 FROM user_bidcoins LIMIT 1"))
        redis = await get_redis()
        await redis.ping()
    except Exception as exc:  # noqa: BLE001
        pytest.skip(f"PostgreSQL/Redis not available: {exc!r}")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client(services_ready: None) -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client; keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session")
async def session(services_ready: None):
    async with async_session_factory() as s:
        yield s


def new_user_id(prefix: str = "it") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def auth_headers(user_id: str, role: str = "user") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role=role)}"}
