"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.bd_bidcoin.api.router import router as bidcoin_router
from src.bd_common.database import engine
from src.bd_common.errors import AppError, InternalError
from src.bd_common.redis_client import close_redis, get_redis
from src.bd_common.response import error_response
from src.bd_gateway.middleware.request_log import RequestLogMiddleware
from src.bd_payment.api.router import router as payment_router
from src.bd_payment.api.seller_router import router as seller_router
from src.bd_payment.api.webhook_router import router as webhook_router
from src.bd_referral.api.router import router as referral_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis connections. Shutdown: dispose."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    redis = await get_redis()
    await redis.ping()
    yield
    # Shutdown
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.warning("AppError %d on %s: %s", exc.code, request.url.path, exc.message)
    resp = error_response(exc.code, exc.message, request)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    internal = InternalError()
    resp = error_response(internal.code, internal.message, request)
    return JSONResponse(
        status_code=internal.http_status,
        content=resp.model_dump(),
    )


app.include_router(bidcoin_router, prefix="/api/v1")
app.include_router(referral_router, prefix="/api/v1")
app.include_router(payment_router, prefix="/api/v1")
app.include_router(seller_router, prefix="/api/v1")
app.include_router(webhook_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
