"""PropertyRepository — concrete implementation of PropertyRepositoryProtocol.

All queries use raw text() SQL (no ORM). Property writes are optimistic:
the UPDATE matches on the version the caller loaded and bumps it, so a
writer that skipped the row lock cannot silently overwrite a newer state.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_common.errors import ConcurrentUpdateError
from src.cc_property.domain.models import Property, Tranche

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_PROPERTY_COLUMNS = """
    id, title, price_cents, total_shares, available_shares, status,
    application_deadline, priority_investor_id, monthly_rental_income_cents,
    version, created_at, updated_at
"""

_GET_PROPERTY_SQL = text(f"""
    SELECT {_PROPERTY_COLUMNS}
    FROM properties
    WHERE id = :property_id
""")

_GET_PROPERTY_FOR_UPDATE_SQL = text(f"""
    SELECT {_PROPERTY_COLUMNS}
    FROM properties
    WHERE id = :property_id
    FOR UPDATE
""")

_LIST_OPEN_PROPERTY_IDS_SQL = text("""
    SELECT id
    FROM properties
    WHERE status NOT IN ('sold', 'declined')
    ORDER BY created_at, id
""")

_LIST_ALL_PROPERTY_IDS_SQL = text("""
    SELECT id
    FROM properties
    ORDER BY created_at, id
""")

_UPDATE_PROPERTY_SQL = text("""
    UPDATE properties
    SET available_shares     = :available_shares,
        status               = :status,
        priority_investor_id = :priority_investor_id,
        version              = version + 1,
        updated_at           = NOW()
    WHERE id = :id AND version = :version
    RETURNING version
""")

_TRANCHE_COLUMNS = """
    id, property_id, milestone, event_date, due_date,
    total_cents, paid_cents, status, created_at
"""

_LIST_TRANCHES_SQL = text(f"""
    SELECT {_TRANCHE_COLUMNS}
    FROM tranches
    WHERE property_id = :property_id
    ORDER BY due_date, event_date, id
""")

_UPDATE_TRANCHE_SQL = text("""
    UPDATE tranches
    SET paid_cents = :paid_cents,
        status     = :status,
        updated_at = NOW()
    WHERE id = :id
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_property(row: object) -> Property:
    return Property(
        id=str(row.id),  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        price=row.price_cents,  # type: ignore[attr-defined]
        total_shares=row.total_shares,  # type: ignore[attr-defined]
        available_shares=row.available_shares,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        application_deadline=row.application_deadline,  # type: ignore[attr-defined]
        priority_investor_id=row.priority_investor_id,  # type: ignore[attr-defined]
        monthly_rental_income=row.monthly_rental_income_cents,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_tranche(row: object) -> Tranche:
    return Tranche(
        id=str(row.id),  # type: ignore[attr-defined]
        property_id=str(row.property_id),  # type: ignore[attr-defined]
        milestone=row.milestone,  # type: ignore[attr-defined]
        event_date=row.event_date,  # type: ignore[attr-defined]
        due_date=row.due_date,  # type: ignore[attr-defined]
        total=row.total_cents,  # type: ignore[attr-defined]
        paid=row.paid_cents,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class PropertyRepository:
    async def get_property(
        self, db: AsyncSession, property_id: str, for_update: bool = False
    ) -> Property | None:
        sql = _GET_PROPERTY_FOR_UPDATE_SQL if for_update else _GET_PROPERTY_SQL
        result = await db.execute(sql, {"property_id": property_id})
        row = result.fetchone()
        return _row_to_property(row) if row else None

    async def list_open_property_ids(self, db: AsyncSession) -> list[str]:
        result = await db.execute(_LIST_OPEN_PROPERTY_IDS_SQL)
        return [str(row.id) for row in result.fetchall()]

    async def list_all_property_ids(self, db: AsyncSession) -> list[str]:
        result = await db.execute(_LIST_ALL_PROPERTY_IDS_SQL)
        return [str(row.id) for row in result.fetchall()]

    async def update_property(self, db: AsyncSession, prop: Property) -> None:
        result = await db.execute(
            _UPDATE_PROPERTY_SQL,
            {
                "id": prop.id,
                "available_shares": prop.available_shares,
                "status": prop.status,
                "priority_investor_id": prop.priority_investor_id,
                "version": prop.version,
            },
        )
        row = result.fetchone()
        if row is None:
            raise ConcurrentUpdateError("property", prop.id)
        prop.version = row.version

    async def list_tranches(self, db: AsyncSession, property_id: str) -> list[Tranche]:
        result = await db.execute(_LIST_TRANCHES_SQL, {"property_id": property_id})
        return [_row_to_tranche(row) for row in result.fetchall()]

    async def update_tranche(self, db: AsyncSession, tranche: Tranche) -> None:
        await db.execute(
            _UPDATE_TRANCHE_SQL,
            {"id": tranche.id, "paid_cents": tranche.paid, "status": tranche.status},
        )
