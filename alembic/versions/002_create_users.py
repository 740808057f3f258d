"""002: create users table

Revision ID: 002
Revises: 001
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Identities are issued by the external auth service; ids are its subject ids
    op.execute("""
        CREATE TABLE users (
            id                      VARCHAR(64)     PRIMARY KEY,
            username                VARCHAR(64)     NOT NULL,
            wallet_balance_cents    BIGINT          NOT NULL DEFAULT 0,
            is_active               BOOLEAN         NOT NULL DEFAULT TRUE,
            is_admin                BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_username        UNIQUE (username),
            CONSTRAINT ck_users_wallet_gte_0    CHECK (wallet_balance_cents >= 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE users IS 'Investors and admins; wallet balance in cents, never negative';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
