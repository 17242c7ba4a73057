"""Integration tests for the BidCoin ledger endpoints (requires PG + Redis).

Uses the session-scoped client fixture from tests/integration/conftest.py.
"""

import asyncio

import pytest
from httpx import AsyncClient

from tests.integration.conftest import auth_headers, new_user_id

pytestmark = [pytest.mark.integration, pytest.mark.asyncio(loop_scope="session")]


async def _signup(client: AsyncClient, user_id: str) -> None:
    resp = await client.post("/api/v1/bidcoins/signup-bonus", headers=auth_headers(user_id))
    assert resp.status_code == 200, resp.text


class TestEarnSpend:
    async def test_new_user_has_zero_balance(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/bidcoins/me", headers=auth_headers(new_user_id()))
        assert resp.status_code == 200
        assert resp.json()["data"]["balance"] == 0

    async def test_spend_then_overdraw(self, client: AsyncClient) -> None:
        user_id = new_user_id()
        headers = auth_headers(user_id)
        await _signup(client, user_id)

        spend = await client.post(
            "/api/v1/bidcoins/spend",
            json={"amount": 300, "type": "bid_fee", "reference_id": "a1"},
            headers=headers,
        )
        assert spend.json()["data"]["balance"] == 200

        overdraw = await client.post(
            "/api/v1/bidcoins/spend", json={"amount": 300, "type": "bid_fee"}, headers=headers
        )
        assert overdraw.status_code == 422
        assert overdraw.json()["code"] == 2001

        history = await client.get("/api/v1/bidcoins/transactions", headers=headers)
        deltas = [item["delta"] for item in history.json()["data"]["items"]]
        assert deltas == [-300, 500]

    async def test_signup_bonus_only_once(self, client: AsyncClient) -> None:
        user_id = new_user_id()
        await _signup(client, user_id)
        again = await client.post(
            "/api/v1/bidcoins/signup-bonus", headers=auth_headers(user_id)
        )
        assert again.status_code == 409


class TestConcurrency:
    async def test_parallel_spends_never_overdraw(self, client: AsyncClient) -> None:
        user_id = new_user_id()
        headers = auth_headers(user_id)
        await _signup(client, user_id)  # 500 coins

        responses = await asyncio.gather(
            *(
                client.post(
                    "/api/v1/bidcoins/spend",
                    json={"amount": 100, "type": "bid_fee"},
                    headers=headers,
                )
                for _ in range(8)
            )
        )

        assert sum(1 for r in responses if r.status_code == 200) == 5
        assert all(r.status_code in (200, 422) for r in responses)

        audit = await client.get(
            f"/api/v1/bidcoins/audit/{user_id}", headers=auth_headers("ops", role="admin")
        )
        data = audit.json()["data"]
        assert data["balance"] == 0
        assert data["consistent"] is True

    async def test_parallel_idempotent_requests_apply_once(self, client: AsyncClient) -> None:
        user_id = new_user_id()
        headers = auth_headers(user_id)
        await _signup(client, user_id)
        body = {
            "amount": 100,
            "type": "item_purchase",
            "reference_id": "order-1",
            "reference_table": "orders",
            "idempotent": True,
        }

        responses = await asyncio.gather(
            *(client.post("/api/v1/bidcoins/spend", json=body, headers=headers) for _ in range(4))
        )

        assert all(r.status_code == 200 for r in responses)
        entry_ids = {r.json()["data"]["ledger_entry_id"] for r in responses}
        assert len(entry_ids) == 1
        me = await client.get("/api/v1/bidcoins/me", headers=headers)
        assert me.json()["data"]["balance"] == 400
