"""008: create audit_records table

Revision ID: 008
Revises: 007
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE audit_records (
            id              BIGSERIAL       PRIMARY KEY,
            actor_id        VARCHAR(64)     NOT NULL,
            action          VARCHAR(40)     NOT NULL,
            property_id     VARCHAR(64),
            reference_id    VARCHAR(64),
            amount          BIGINT,
            shares          INTEGER,
            details         TEXT            NOT NULL DEFAULT '',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_audit_action CHECK (
                action IN (
                    'WALLET_DEPOSIT',
                    'APPLICATION_SUBMITTED', 'PRIORITY_ASSIGNED', 'PRIORITY_CLEARED',
                    'INVESTMENT_CONFIRMED', 'INVESTMENT_CANCELLED',
                    'APPLICATION_ACCEPTED', 'APPLICATION_PARTIAL',
                    'APPLICATION_REJECTED', 'APPLICATION_CARRIED',
                    'TRANCHE_ACCEPTED', 'TRANCHE_REJECTED',
                    'PROPERTY_FINALIZED'
                )
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_audit_property
        ON audit_records (property_id, id DESC)
        WHERE property_id IS NOT NULL;
    """)
    op.execute("CREATE INDEX idx_audit_actor ON audit_records (actor_id, created_at DESC);")
    op.execute("COMMENT ON TABLE audit_records IS 'Structured settlement history, append-only';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS audit_records CASCADE;")
