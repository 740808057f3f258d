"""DB helpers for audit_records and notifications.

Called from the engine services within the caller's transaction, so an
audit row exists exactly when the mutation it describes was committed.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_audit.domain.models import AuditRecord, Notification

_INSERT_AUDIT_SQL = text("""
    INSERT INTO audit_records
        (actor_id, action, property_id, reference_id, amount, shares, details)
    VALUES
        (:actor_id, :action, :property_id, :reference_id, :amount, :shares, :details)
""")

_INSERT_NOTIFICATION_SQL = text("""
    INSERT INTO notifications (user_id, property_id, title, content)
    VALUES (:user_id, :property_id, :title, :content)
""")

_LIST_AUDIT_SQL = text("""
    SELECT id, actor_id, action, property_id, reference_id, amount, shares, details, created_at
    FROM audit_records
    WHERE property_id = :property_id
    ORDER BY id DESC
    LIMIT :limit
""")


class AuditRepository:
    async def append(self, db: AsyncSession, record: AuditRecord) -> None:
        await db.execute(
            _INSERT_AUDIT_SQL,
            {
                "actor_id": record.actor_id,
                "action": record.action,
                "property_id": record.property_id,
                "reference_id": record.reference_id,
                "amount": record.amount,
                "shares": record.shares,
                "details": record.details,
            },
        )

    async def enqueue_notification(self, db: AsyncSession, notification: Notification) -> None:
        await db.execute(
            _INSERT_NOTIFICATION_SQL,
            {
                "user_id": notification.user_id,
                "property_id": notification.property_id,
                "title": notification.title,
                "content": notification.content,
            },
        )

    async def list_records(
        self, db: AsyncSession, property_id: str, limit: int
    ) -> list[AuditRecord]:
        result = await db.execute(_LIST_AUDIT_SQL, {"property_id": property_id, "limit": limit})
        return [
            AuditRecord(
                id=row.id,
                actor_id=row.actor_id,
                action=row.action,
                property_id=row.property_id,
                reference_id=row.reference_id,
                amount=row.amount,
                shares=row.shares,
                details=row.details,
                created_at=row.created_at,
            )
            for row in result.fetchall()
        ]
