"""003: create properties table

Revision ID: 003
Revises: 002
Create Date: 2026-10-05
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE properties (
            id                          VARCHAR(64)     PRIMARY KEY,
            title                       VARCHAR(255)    NOT NULL,
            price_cents                 BIGINT          NOT NULL,
            total_shares                INTEGER         NOT NULL,
            available_shares            INTEGER         NOT NULL,
            status                      VARCHAR(20)     NOT NULL DEFAULT 'available',
            application_deadline        TIMESTAMPTZ     NOT NULL,
            priority_investor_id        VARCHAR(64),
            monthly_rental_income_cents BIGINT          NOT NULL DEFAULT 0,
            version                     BIGINT          NOT NULL DEFAULT 0,
            created_at                  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at                  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_properties_price_gt_0     CHECK (price_cents > 0),
            CONSTRAINT ck_properties_total_shares   CHECK (total_shares > 0),
            CONSTRAINT ck_properties_available      CHECK (
                available_shares >= 0 AND available_shares <= total_shares
            ),
            CONSTRAINT ck_properties_status         CHECK (
                status IN ('pending', 'available', 'sold', 'rented', 'declined')
            ),
            CONSTRAINT ck_properties_rent_gte_0     CHECK (monthly_rental_income_cents >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_properties_status ON properties (status, created_at);")
    op.execute("""
        CREATE TRIGGER trg_properties_updated_at
            BEFORE UPDATE ON properties
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE properties IS 'Fractional properties; one share = $1,000 of price';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS properties CASCADE;")
