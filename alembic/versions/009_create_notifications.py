"""009: create notifications table (outbox)

Revision ID: 009
Revises: 008
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "009"
down_revision: Union[str, None] = "008"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Written in the settlement transaction; a separate deliverer drains it
    op.execute("""
        CREATE TABLE notifications (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            property_id     VARCHAR(64),
            title           VARCHAR(255)    NOT NULL,
            content         TEXT            NOT NULL,
            delivered_at    TIMESTAMPTZ,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("""
        CREATE INDEX idx_notifications_undelivered
        ON notifications (created_at)
        WHERE delivered_at IS NULL;
    """)
    op.execute("CREATE INDEX idx_notifications_user ON notifications (user_id, created_at DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notifications CASCADE;")
