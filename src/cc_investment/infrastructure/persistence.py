"""InvestmentRepository — concrete implementation of InvestmentRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.

Transaction ownership: the CALLER commits or rolls back.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.errors import InternalError
from src.cc_investment.domain.models import Application, Investment

# ---------------------------------------------------------------------------
# SQL: applications
# ---------------------------------------------------------------------------

_APPLICATION_COLUMNS = """
    id, user_id, property_id, target_tranche_index,
    requested_amount_cents, requested_shares, status, is_priority,
    approved_amount_cents, approved_shares, created_at, settled_at
"""

_INSERT_APPLICATION_SQL = text(f"""
    INSERT INTO applications
        (id, user_id, property_id, target_tranche_index,
         requested_amount_cents, requested_shares, status, is_priority)
    VALUES
        (:id, :user_id, :property_id, :target_tranche_index,
         :requested_amount_cents, :requested_shares, :status, :is_priority)
    RETURNING {_APPLICATION_COLUMNS}
""")

_GET_APPLICATION_SQL = text(f"""
    SELECT {_APPLICATION_COLUMNS}
    FROM applications
    WHERE id = :application_id
""")

_UPDATE_APPLICATION_SQL = text("""
    UPDATE applications
    SET status                = :status,
        target_tranche_index  = :target_tranche_index,
        is_priority           = :is_priority,
        approved_amount_cents = :approved_amount_cents,
        approved_shares       = :approved_shares,
        settled_at            = :settled_at,
        updated_at            = NOW()
    WHERE id = :id
""")

# Priority first, then oldest; the sweep and finalize rely on this order
_LIST_OPEN_APPLICATIONS_SQL = text(f"""
    SELECT {_APPLICATION_COLUMNS}
    FROM applications
    WHERE property_id = :property_id
      AND status IN ('pending', 'carried')
      AND (CAST(:target AS INTEGER) IS NULL OR target_tranche_index = CAST(:target AS INTEGER))
    ORDER BY is_priority DESC, created_at, id
""")

_LIST_ALL_OPEN_APPLICATIONS_SQL = text(f"""
    SELECT {_APPLICATION_COLUMNS}
    FROM applications
    WHERE status IN ('pending', 'carried')
    ORDER BY property_id, created_at, id
""")

_LIST_USER_APPLICATIONS_SQL = text(f"""
    SELECT {_APPLICATION_COLUMNS}
    FROM applications
    WHERE user_id = :user_id
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_HAS_OPEN_PRIORITY_APPLICATION_SQL = text("""
    SELECT EXISTS (
        SELECT 1 FROM applications
        WHERE property_id = :property_id
          AND user_id = :user_id
          AND is_priority
          AND status IN ('pending', 'carried')
    )
""")

# ---------------------------------------------------------------------------
# SQL: investments
# ---------------------------------------------------------------------------

_INVESTMENT_COLUMNS = "id, user_id, property_id, shares, invested_amount_cents, kind, created_at"

_INSERT_INVESTMENT_SQL = text(f"""
    INSERT INTO investments
        (id, user_id, property_id, shares, invested_amount_cents, kind)
    VALUES
        (:id, :user_id, :property_id, :shares, :invested_amount_cents, :kind)
    RETURNING {_INVESTMENT_COLUMNS}
""")

_GET_INVESTMENT_SQL = text(f"""
    SELECT {_INVESTMENT_COLUMNS}
    FROM investments
    WHERE id = :investment_id
""")

_UPDATE_INVESTMENT_SHARES_SQL = text("""
    UPDATE investments
    SET shares = :shares,
        updated_at = NOW()
    WHERE id = :id
""")

_DELETE_INVESTMENT_SQL = text("DELETE FROM investments WHERE id = :investment_id")

# Largest commitment first: finalize allocates leftover shares in this order
_LIST_PROPERTY_INVESTMENTS_SQL = text(f"""
    SELECT {_INVESTMENT_COLUMNS}
    FROM investments
    WHERE property_id = :property_id
    ORDER BY invested_amount_cents DESC, created_at, id
""")

_LIST_USER_INVESTMENTS_SQL = text(f"""
    SELECT {_INVESTMENT_COLUMNS}
    FROM investments
    WHERE user_id = :user_id
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_HAS_INVESTMENT_SQL = text("""
    SELECT EXISTS (
        SELECT 1 FROM investments
        WHERE property_id = :property_id AND user_id = :user_id
    )
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_application(row: object) -> Application:
    return Application(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        property_id=str(row.property_id),  # type: ignore[attr-defined]
        target_tranche_index=row.target_tranche_index,  # type: ignore[attr-defined]
        requested_amount=row.requested_amount_cents,  # type: ignore[attr-defined]
        requested_shares=row.requested_shares,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        is_priority=row.is_priority,  # type: ignore[attr-defined]
        approved_amount=row.approved_amount_cents,  # type: ignore[attr-defined]
        approved_shares=row.approved_shares,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        settled_at=row.settled_at,  # type: ignore[attr-defined]
    )


def _row_to_investment(row: object) -> Investment:
    return Investment(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=str(row.user_id),  # type: ignore[attr-defined]
        property_id=str(row.property_id),  # type: ignore[attr-defined]
        shares=row.shares,  # type: ignore[attr-defined]
        invested_amount=row.invested_amount_cents,  # type: ignore[attr-defined]
        kind=row.kind,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class InvestmentRepository:
    # --- applications ---

    async def insert_application(self, db: AsyncSession, app: Application) -> Application:
        result = await db.execute(
            _INSERT_APPLICATION_SQL,
            {
                "id": app.id,
                "user_id": app.user_id,
                "property_id": app.property_id,
                "target_tranche_index": app.target_tranche_index,
                "requested_amount_cents": app.requested_amount,
                "requested_shares": app.requested_shares,
                "status": app.status,
                "is_priority": app.is_priority,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Application insert returned no rows")
        return _row_to_application(row)

    async def get_application(self, db: AsyncSession, application_id: str) -> Application | None:
        result = await db.execute(_GET_APPLICATION_SQL, {"application_id": application_id})
        row = result.fetchone()
        return _row_to_application(row) if row else None

    async def update_application(self, db: AsyncSession, app: Application) -> None:
        await db.execute(
            _UPDATE_APPLICATION_SQL,
            {
                "id": app.id,
                "status": app.status,
                "target_tranche_index": app.target_tranche_index,
                "is_priority": app.is_priority,
                "approved_amount_cents": app.approved_amount,
                "approved_shares": app.approved_shares,
                "settled_at": app.settled_at,
            },
        )

    async def list_open_applications(
        self, db: AsyncSession, property_id: str, target_tranche_index: int | None = None
    ) -> list[Application]:
        result = await db.execute(
            _LIST_OPEN_APPLICATIONS_SQL,
            {"property_id": property_id, "target": target_tranche_index},
        )
        return [_row_to_application(row) for row in result.fetchall()]

    async def list_open_applications_all(self, db: AsyncSession) -> list[Application]:
        result = await db.execute(_LIST_ALL_OPEN_APPLICATIONS_SQL)
        return [_row_to_application(row) for row in result.fetchall()]

    async def list_user_applications(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[Application]:
        result = await db.execute(
            _LIST_USER_APPLICATIONS_SQL, {"user_id": user_id, "limit": limit}
        )
        return [_row_to_application(row) for row in result.fetchall()]

    async def has_open_priority_application(
        self, db: AsyncSession, property_id: str, user_id: str
    ) -> bool:
        result = await db.execute(
            _HAS_OPEN_PRIORITY_APPLICATION_SQL,
            {"property_id": property_id, "user_id": user_id},
        )
        return bool(result.scalar_one())

    # --- investments ---

    async def insert_investment(self, db: AsyncSession, inv: Investment) -> Investment:
        result = await db.execute(
            _INSERT_INVESTMENT_SQL,
            {
                "id": inv.id,
                "user_id": inv.user_id,
                "property_id": inv.property_id,
                "shares": inv.shares,
                "invested_amount_cents": inv.invested_amount,
                "kind": inv.kind,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Investment insert returned no rows")
        return _row_to_investment(row)

    async def get_investment(self, db: AsyncSession, investment_id: str) -> Investment | None:
        result = await db.execute(_GET_INVESTMENT_SQL, {"investment_id": investment_id})
        row = result.fetchone()
        return _row_to_investment(row) if row else None

    async def update_investment_shares(self, db: AsyncSession, inv: Investment) -> None:
        await db.execute(_UPDATE_INVESTMENT_SHARES_SQL, {"id": inv.id, "shares": inv.shares})

    async def delete_investment(self, db: AsyncSession, investment_id: str) -> None:
        await db.execute(_DELETE_INVESTMENT_SQL, {"investment_id": investment_id})

    async def list_property_investments(
        self, db: AsyncSession, property_id: str
    ) -> list[Investment]:
        result = await db.execute(_LIST_PROPERTY_INVESTMENTS_SQL, {"property_id": property_id})
        return [_row_to_investment(row) for row in result.fetchall()]

    async def list_user_investments(
        self, db: AsyncSession, user_id: str, limit: int
    ) -> list[Investment]:
        result = await db.execute(_LIST_USER_INVESTMENTS_SQL, {"user_id": user_id, "limit": limit})
        return [_row_to_investment(row) for row in result.fetchall()]

    async def has_investment(self, db: AsyncSession, property_id: str, user_id: str) -> bool:
        result = await db.execute(
            _HAS_INVESTMENT_SQL, {"property_id": property_id, "user_id": user_id}
        )
        return bool(result.scalar_one())
