"""005: create applications table

Revision ID: 005
Revises: 004
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # user_id is not a foreign key: users are owned by the auth service and the
    # sweep tolerates applications whose user has disappeared
    op.execute("""
        CREATE TABLE applications (
            id                      VARCHAR(64)     PRIMARY KEY,
            user_id                 VARCHAR(64)     NOT NULL,
            property_id             VARCHAR(64)     NOT NULL REFERENCES properties(id) ON DELETE CASCADE,
            target_tranche_index    INTEGER         NOT NULL,
            requested_amount_cents  BIGINT          NOT NULL,
            requested_shares        INTEGER         NOT NULL,
            status                  VARCHAR(20)     NOT NULL DEFAULT 'pending',
            is_priority             BOOLEAN         NOT NULL DEFAULT FALSE,
            approved_amount_cents   BIGINT,
            approved_shares         INTEGER,
            settled_at              TIMESTAMPTZ,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_applications_target       CHECK (target_tranche_index >= 1),
            CONSTRAINT ck_applications_amount       CHECK (requested_amount_cents >= 0),
            CONSTRAINT ck_applications_shares       CHECK (requested_shares > 0),
            CONSTRAINT ck_applications_status       CHECK (
                status IN ('pending', 'accepted', 'partial', 'rejected', 'carried')
            ),
            CONSTRAINT ck_applications_approved     CHECK (
                approved_shares IS NULL
                OR (approved_shares >= 0 AND approved_shares <= requested_shares)
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_applications_open
        ON applications (property_id, target_tranche_index, created_at)
        WHERE status IN ('pending', 'carried');
    """)
    op.execute("CREATE INDEX idx_applications_user ON applications (user_id, created_at DESC);")
    # At most one live priority claim per property
    op.execute("""
        CREATE UNIQUE INDEX uq_applications_open_priority
        ON applications (property_id)
        WHERE is_priority AND status IN ('pending', 'carried');
    """)
    op.execute("""
        CREATE TRIGGER trg_applications_updated_at
            BEFORE UPDATE ON applications
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS applications CASCADE;")
