"""006: create investments table

Revision ID: 006
Revises: 005
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE investments (
            id                      VARCHAR(64)     PRIMARY KEY,
            user_id                 VARCHAR(64)     NOT NULL,
            property_id             VARCHAR(64)     NOT NULL REFERENCES properties(id) ON DELETE CASCADE,
            shares                  INTEGER         NOT NULL,
            invested_amount_cents   BIGINT          NOT NULL,
            kind                    VARCHAR(20)     NOT NULL DEFAULT 'subscription',
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_investments_shares_gt_0   CHECK (shares > 0),
            CONSTRAINT ck_investments_amount_gte_0  CHECK (invested_amount_cents >= 0),
            CONSTRAINT ck_investments_kind          CHECK (kind IN ('subscription', 'buyout'))
        );
    """)
    op.execute("""
        CREATE INDEX idx_investments_property_amount
        ON investments (property_id, invested_amount_cents DESC);
    """)
    op.execute("CREATE INDEX idx_investments_user ON investments (user_id, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_investments_updated_at
            BEFORE UPDATE ON investments
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS investments CASCADE;")
