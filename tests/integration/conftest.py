"""Integration-test fixtures (requires running PostgreSQL with migrations applied).

Pre-condition: alembic upgrade head

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool (created at import time) remains valid across
the entire test session. When the database cannot be reached every test
here is skipped.
"""

import uuid
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config.settings import settings
from src.cc_common.database import async_session_factory, engine
from src.main import app

_INSERT_USER_SQL = text("""
    INSERT INTO users (id, username, wallet_balance_cents, is_admin)
    VALUES (:id, :username, :balance, :is_admin)
""")

_INSERT_PROPERTY_SQL = text("""
    INSERT INTO properties
        (id, title, price_cents, total_shares, available_shares, status,
         application_deadline)
    VALUES
        (:id, :title, :price, :total_shares, :total_shares, 'available', :deadline)
""")

_INSERT_TRANCHE_SQL = text("""
    INSERT INTO tranches (id, property_id, milestone, event_date, due_date, total_cents)
    VALUES (:id, :property_id, :milestone, :event_date, :due_date, :total)
""")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def database() -> None:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1 FROM properties LIMIT 1"))
    except (OSError, SQLAlchemyError) as exc:
        pytest.skip(f"PostgreSQL not available: {exc}")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client(database: None) -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def bearer(user_id: str) -> dict[str, str]:
    token = jwt.encode(
        {"sub": user_id, "type": "access", "exp": datetime.now(UTC) + timedelta(minutes=15)},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    return {"Authorization": f"Bearer {token}"}


async def seed_user(balance: int = 0, is_admin: bool = False) -> str:
    user_id = f"it_{uuid.uuid4().hex[:12]}"
    async with async_session_factory() as db:
        await db.execute(
            _INSERT_USER_SQL,
            {"id": user_id, "username": user_id, "balance": balance, "is_admin": is_admin},
        )
        await db.commit()
    return user_id


async def seed_property(
    now: datetime,
    plan: list[tuple[str, datetime, datetime, int]] | None = None,
    price: int = 10_000_000,
    deadline_days: int = 150,
) -> str:
    """$100,000 property; by default a founding call open now and two later calls."""
    property_id = f"it_{uuid.uuid4().hex[:12]}"
    plan = plan or [
        ("Deposit", now - timedelta(days=1), now + timedelta(days=10), 5_000_000),
        ("Construction", now + timedelta(days=20), now + timedelta(days=60), 3_000_000),
        ("Handover", now + timedelta(days=70), now + timedelta(days=120), 2_000_000),
    ]
    async with async_session_factory() as db:
        await db.execute(
            _INSERT_PROPERTY_SQL,
            {
                "id": property_id,
                "title": f"Integration {property_id}",
                "price": price,
                "total_shares": price // 100_000,
                "deadline": now + timedelta(days=deadline_days),
            },
        )
        for n, (milestone, event_date, due_date, total) in enumerate(plan, start=1):
            await db.execute(
                _INSERT_TRANCHE_SQL,
                {
                    "id": f"{property_id}-t{n}",
                    "property_id": property_id,
                    "milestone": milestone,
                    "event_date": event_date,
                    "due_date": due_date,
                    "total": total,
                },
            )
        await db.commit()
    return property_id


@pytest.fixture
def seed(database: None) -> SimpleNamespace:
    """Row factories and token signing for the flow tests."""
    return SimpleNamespace(user=seed_user, property=seed_property, bearer=bearer)
