"""004: create tranches table (payment plan)

Revision ID: 004
Revises: 003
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE tranches (
            id              VARCHAR(64)     PRIMARY KEY,
            property_id     VARCHAR(64)     NOT NULL REFERENCES properties(id) ON DELETE CASCADE,
            milestone       VARCHAR(255)    NOT NULL,
            event_date      TIMESTAMPTZ     NOT NULL,
            due_date        TIMESTAMPTZ     NOT NULL,
            total_cents     BIGINT          NOT NULL,
            paid_cents      BIGINT          NOT NULL DEFAULT 0,
            status          VARCHAR(20)     NOT NULL DEFAULT 'upcoming',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_tranches_total_gt_0   CHECK (total_cents > 0),
            CONSTRAINT ck_tranches_paid_bounds  CHECK (paid_cents >= 0 AND paid_cents <= total_cents),
            CONSTRAINT ck_tranches_window       CHECK (due_date >= event_date),
            CONSTRAINT ck_tranches_status       CHECK (status IN ('upcoming', 'open', 'settled'))
        );
    """)
    op.execute("CREATE INDEX idx_tranches_property_due ON tranches (property_id, due_date);")
    op.execute("""
        CREATE INDEX idx_tranches_unsettled_due
        ON tranches (due_date)
        WHERE status <> 'settled';
    """)
    op.execute("""
        CREATE TRIGGER trg_tranches_updated_at
            BEFORE UPDATE ON tranches
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE tranches IS 'Capital-call milestones; paid_cents written by the settlement engine only';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS tranches CASCADE;")
