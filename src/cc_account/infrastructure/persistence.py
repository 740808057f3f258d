"""AccountRepository — concrete implementation of AccountRepositoryProtocol.

All wallet-mutating operations use atomic PostgreSQL UPDATE ... RETURNING.
A result of 0 rows on a debit means the balance could not cover the amount.

Transaction ownership: The CALLER (application service) is responsible for
committing or rolling back the session.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_account.domain.models import LedgerEntry, User
from src.cc_common.errors import InsufficientFundsError, InternalError, UserNotFoundError

# ---------------------------------------------------------------------------
# SQL: users / wallet
# ---------------------------------------------------------------------------

_USER_COLUMNS = "id, username, wallet_balance_cents, is_active, is_admin, created_at, updated_at"

_GET_USER_SQL = text(f"""
    SELECT {_USER_COLUMNS}
    FROM users
    WHERE id = :user_id
""")

_DEBIT_SQL = text(f"""
    UPDATE users
    SET wallet_balance_cents = wallet_balance_cents - :amount,
        updated_at = NOW()
    WHERE id = :user_id AND wallet_balance_cents >= :amount
    RETURNING {_USER_COLUMNS}
""")

_CREDIT_SQL = text(f"""
    UPDATE users
    SET wallet_balance_cents = wallet_balance_cents + :amount,
        updated_at = NOW()
    WHERE id = :user_id
    RETURNING {_USER_COLUMNS}
""")

_INSERT_LEDGER_SQL = text("""
    INSERT INTO ledger_entries
        (user_id, entry_type, amount, balance_after,
         reference_type, reference_id, description)
    VALUES
        (:user_id, :entry_type, :amount, :balance_after,
         :reference_type, :reference_id, :description)
    RETURNING id, user_id, entry_type, amount, balance_after,
              reference_type, reference_id, description, created_at
""")

_LIST_LEDGER_SQL = text("""
    SELECT id, user_id, entry_type, amount, balance_after,
           reference_type, reference_id, description, created_at
    FROM ledger_entries
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
      AND (CAST(:entry_type AS TEXT) IS NULL OR entry_type = CAST(:entry_type AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_COUNT_NEGATIVE_SQL = text("SELECT COUNT(*) FROM users WHERE wallet_balance_cents < 0")


def _row_to_user(row: object) -> User:
    return User(
        id=str(row.id),  # type: ignore[attr-defined]
        username=row.username,  # type: ignore[attr-defined]
        wallet_balance=row.wallet_balance_cents,  # type: ignore[attr-defined]
        is_active=row.is_active,  # type: ignore[attr-defined]
        is_admin=row.is_admin,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_ledger(row: object) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        entry_type=row.entry_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        reference_type=row.reference_type,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class AccountRepository:
    """Concrete repository — all wallet operations atomic at the SQL level."""

    async def get_user(self, db: AsyncSession, user_id: str) -> User | None:
        result = await db.execute(_GET_USER_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_user(row) if row else None

    async def debit_wallet(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        entry_type: str,
        ref_type: str,
        ref_id: str,
        description: str,
    ) -> tuple[User, LedgerEntry]:
        result = await db.execute(_DEBIT_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            current = await self.get_user(db, user_id)
            if current is None:
                raise UserNotFoundError(user_id)
            raise InsufficientFundsError(amount, current.wallet_balance)
        user = _row_to_user(row)
        entry = await self._append_ledger(
            db, user, entry_type, -amount, ref_type, ref_id, description
        )
        return user, entry

    async def credit_wallet(
        self,
        db: AsyncSession,
        user_id: str,
        amount: int,
        entry_type: str,
        ref_type: str | None,
        ref_id: str | None,
        description: str,
    ) -> tuple[User, LedgerEntry]:
        result = await db.execute(_CREDIT_SQL, {"user_id": user_id, "amount": amount})
        row = result.fetchone()
        if row is None:
            raise UserNotFoundError(user_id)
        user = _row_to_user(row)
        entry = await self._append_ledger(
            db, user, entry_type, amount, ref_type, ref_id, description
        )
        return user, entry

    async def list_ledger_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_LEDGER_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "entry_type": entry_type,
                "limit": limit,
            },
        )
        return [_row_to_ledger(row) for row in result.fetchall()]

    async def count_negative_wallets(self, db: AsyncSession) -> int:
        result = await db.execute(_COUNT_NEGATIVE_SQL)
        return int(result.scalar_one())

    async def _append_ledger(
        self,
        db: AsyncSession,
        user: User,
        entry_type: str,
        signed_amount: int,
        ref_type: str | None,
        ref_id: str | None,
        description: str,
    ) -> LedgerEntry:
        ledger_result = await db.execute(
            _INSERT_LEDGER_SQL,
            {
                "user_id": user.id,
                "entry_type": entry_type,
                "amount": signed_amount,
                "balance_after": user.wallet_balance,
                "reference_type": ref_type,
                "reference_id": ref_id,
                "description": description,
            },
        )
        ledger_row = ledger_result.fetchone()
        if ledger_row is None:
            raise InternalError("Ledger insert returned no rows")
        return _row_to_ledger(ledger_row)
