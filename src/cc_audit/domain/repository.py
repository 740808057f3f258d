from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_audit.domain.models import AuditRecord, Notification


class AuditRepositoryProtocol(Protocol):
    async def append(self, db: AsyncSession, record: AuditRecord) -> None: ...

    async def enqueue_notification(self, db: AsyncSession, notification: Notification) -> None: ...

    async def list_records(
        self, db: AsyncSession, property_id: str, limit: int
    ) -> list[AuditRecord]: ...
