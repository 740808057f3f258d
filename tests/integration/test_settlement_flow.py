"""End-to-end settlement flow over PostgreSQL (requires running PG).

Pre-condition: alembic upgrade head

Intake, listings and cancellation go through HTTP with the wall clock;
the sweep and finalize are driven through their services with an explicit
`now` so the milestone dates can be crossed without waiting.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from src.cc_common.database import async_session_factory
from src.cc_common.datetime_utils import utc_now
from src.cc_settlement.application.finalize import FinalizeService
from src.cc_settlement.application.sweep import SweepService

pytestmark = pytest.mark.asyncio(loop_scope="session")


async def _commit(client: AsyncClient, seed, user_id: str, property_id: str, shares: int):
    return await client.post(
        "/api/v1/commit-application",
        json={"user_id": user_id, "property_id": property_id, "requested_shares": shares},
        headers=seed.bearer(user_id),
    )


class TestPriorityFlow:
    async def test_commit_sweep_finalize(self, client: AsyncClient, seed) -> None:
        now = utc_now()
        property_id = await seed.property(now)
        alice = await seed.user(10_000_000)
        bob = await seed.user(10_000_000)

        resp = await _commit(client, seed, alice, property_id, 60)
        assert resp.status_code == 200
        assert resp.json()["data"]["is_priority"] is True

        resp = await _commit(client, seed, bob, property_id, 20)
        assert resp.json()["data"]["is_priority"] is False

        resp = await client.get(f"/api/v1/properties/{property_id}", headers=seed.bearer(bob))
        detail = resp.json()["data"]
        assert detail["available_shares"] == 20
        assert detail["priority_investor_id"] == alice

        async with async_session_factory() as db:
            await SweepService().run(db, now=now + timedelta(days=11))

        resp = await client.get(f"/api/v1/properties/{property_id}", headers=seed.bearer(bob))
        founding = resp.json()["data"]["tranches"][0]
        assert founding["status"] == "settled"
        assert founding["paid_cents"] == 5_000_000

        resp = await client.get("/api/v1/investments", headers=seed.bearer(alice))
        assert [i["shares"] for i in resp.json()["data"]["items"]] == [60]

        async with async_session_factory() as db:
            result = await FinalizeService().finalize(
                db, property_id, now=now + timedelta(days=151)
            )
        assert result.branch == "priority_buyout"
        assert result.allocated_shares == 20

        resp = await client.get(f"/api/v1/properties/{property_id}", headers=seed.bearer(bob))
        assert resp.json()["data"]["status"] == "sold"
        assert resp.json()["data"]["available_shares"] == 0

        resp = await client.get("/api/v1/account/balance", headers=seed.bearer(alice))
        assert resp.json()["data"]["wallet_balance_cents"] == 4_000_000


class TestIntakeErrors:
    async def test_insufficient_funds(self, client: AsyncClient, seed) -> None:
        property_id = await seed.property(utc_now())
        carol = await seed.user(100)

        resp = await _commit(client, seed, carol, property_id, 10)

        assert resp.status_code == 422
        assert resp.json()["code"] == 2001
        resp = await client.get("/api/v1/account/balance", headers=seed.bearer(carol))
        assert resp.json()["data"]["wallet_balance_cents"] == 100

    async def test_acting_for_another_user(self, client: AsyncClient, seed) -> None:
        property_id = await seed.property(utc_now())
        alice = await seed.user(10_000_000)
        mallory = await seed.user(10_000_000)

        resp = await client.post(
            "/api/v1/commit-application",
            json={"user_id": alice, "property_id": property_id, "requested_shares": 5},
            headers=seed.bearer(mallory),
        )

        assert resp.status_code == 403
        assert resp.json()["code"] == 1005


class TestCancellation:
    async def test_direct_investment_can_be_cancelled(self, client: AsyncClient, seed) -> None:
        now = utc_now()
        property_id = await seed.property(
            now,
            plan=[
                ("Deposit", now - timedelta(days=30), now - timedelta(days=10), 5_000_000),
                ("Construction", now - timedelta(days=1), now + timedelta(days=30), 3_000_000),
            ],
        )
        dave = await seed.user(5_000_000)

        resp = await _commit(client, seed, dave, property_id, 20)
        data = resp.json()["data"]
        assert data["kind"] == "investment"

        resp = await client.delete(
            f"/api/v1/investments/{data['id']}", headers=seed.bearer(dave)
        )

        assert resp.status_code == 200
        assert resp.json()["data"]["refunded_cents"] == 2_000_000
        assert resp.json()["data"]["available_shares"] == 100
        resp = await client.get("/api/v1/account/ledger", headers=seed.bearer(dave))
        types = [e["entry_type"] for e in resp.json()["data"]["items"]]
        assert types == ["INVESTMENT_REFUND", "INVESTMENT_PAYMENT"]
