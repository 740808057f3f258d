"""FastAPI dependencies: get_current_user, require_admin.

Usage in any protected router:
    from src.cc_gateway.auth.dependencies import get_current_user

    @router.get("/protected")
    async def protected(user: User = Depends(get_current_user)):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.cc_account.domain.models import User
from src.cc_account.infrastructure.db_models import UserORM
from src.cc_common.database import get_db_session
from src.cc_common.errors import AccountDisabledError, AdminRequiredError, InvalidCredentialsError
from src.cc_gateway.auth.jwt_handler import decode_access_token

# Tokens come from the external auth service; tokenUrl only feeds Swagger UI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """Validate the Bearer token and load the caller.

    Raises HTTP 401 if the token is missing, invalid, expired, or names an
    unknown user; AccountDisabledError (403) if the user is disabled.
    """
    try:
        payload = decode_access_token(token)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    result = await db.execute(select(UserORM).where(UserORM.id == payload["sub"]))
    row = result.scalar_one_or_none()
    if row is None:
        raise _CREDENTIALS_EXCEPTION

    if not row.is_active:
        raise AccountDisabledError()

    return User(
        id=row.id,
        username=row.username,
        wallet_balance=row.wallet_balance_cents,
        is_active=row.is_active,
        is_admin=row.is_admin,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Sweep, finalize and manual review are administrator-only."""
    if not current_user.is_admin:
        raise AdminRequiredError()
    return current_user
