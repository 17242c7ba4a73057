"""Tests for RequestLogMiddleware."""

import logging

from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient

from src.bd_gateway.middleware.request_log import RequestLogMiddleware


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestLogMiddleware)

    @app.get("/ping")
    async def ping(request: Request) -> dict[str, str]:
        return {"request_id": request.state.request_id}

    return app


async def _get(headers: dict[str, str] | None = None):
    transport = ASGITransport(app=_app())
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        return await ac.get("/ping", headers=headers or {})


class TestRequestLogMiddleware:
    async def test_generates_request_id(self) -> None:
        resp = await _get()
        request_id = resp.json()["request_id"]
        assert request_id.startswith("req_")
        assert resp.headers["X-Request-ID"] == request_id

    async def test_propagates_incoming_request_id(self) -> None:
        resp = await _get({"X-Request-ID": "req_fixed"})
        assert resp.json()["request_id"] == "req_fixed"
        assert resp.headers["X-Request-ID"] == "req_fixed"

    async def test_logs_request_line(self, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="bd.request"):
            await _get()
        assert any("/ping" in r.getMessage() and "200" in r.getMessage() for r in caplog.records)
