"""
FastAPI authorization dependencies
"""

from typing import Optional

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.analytics.exceptions import AuthenticationError, AuthorizationError
from src.auth.admin import ensure_super_admin
from src.auth.tokens import account_id_from_claims, decode_access_token
from src.database.connection import get_db_dependency
from src.database.models import Account

logger = structlog.get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_dependency),
) -> Account:
    """Resolve the bearer token to an account and run the super-admin promotion."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No token provided")

    account_id = account_id_from_claims(decode_access_token(credentials.credentials))
    account = await db.get(Account, account_id)
    if account is None:
        raise AuthenticationError("Account not found")

    await ensure_super_admin(db, account)
    return account


async def require_admin(account: Account = Depends(get_current_account)) -> Account:
    """Admit only accounts carrying the admin flag."""
    if not account.is_admin:
        logger.warning("Admin access denied", account_id=str(account.account_id))
        raise AuthorizationError()
    return account
