"""
Admin flag management

``ensure_super_admin`` is the explicit, idempotent promotion command issued
once per authentication for the configured super-admin email. The
aggregation engine never writes; all admin-flag writes live here.
"""

from typing import Optional, Union
import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from src.analytics.exceptions import InvalidOperationError, NotFoundError
from src.config import get_settings
from src.database.models import Account

logger = structlog.get_logger(__name__)


def is_super_admin(account: Account, super_admin_email: Optional[str] = None) -> bool:
    email = super_admin_email if super_admin_email is not None else get_settings().security.super_admin_email
    if not email:
        return False
    return account.email.strip().lower() == email.strip().lower()


async def ensure_super_admin(
    db: AsyncSession,
    account: Account,
    super_admin_email: Optional[str] = None,
) -> bool:
    """
    Promote ``account`` to admin when it is the configured super admin.

    Returns:
        True if the flag was changed, False if nothing needed doing
    """
    if account.is_admin or not is_super_admin(account, super_admin_email):
        return False

    account.is_admin = True
    await db.flush()
    logger.info("Promoted super admin", account_id=str(account.account_id))
    return True


async def set_admin_status(
    db: AsyncSession,
    account_id: Union[str, uuid.UUID],
    is_admin: bool,
    super_admin_email: Optional[str] = None,
) -> Account:
    """
    Grant or revoke the admin flag.

    Raises:
        NotFoundError: unknown or malformed ``account_id``
        InvalidOperationError: revoking the super admin
    """
    try:
        key = account_id if isinstance(account_id, uuid.UUID) else uuid.UUID(str(account_id))
    except ValueError:
        raise NotFoundError("Account", account_id) from None

    account = await db.get(Account, key)
    if account is None:
        raise NotFoundError("Account", account_id)

    if not is_admin and is_super_admin(account, super_admin_email):
        raise InvalidOperationError(
            "Cannot remove admin status from super admin",
            details={"account_id": str(key)},
        )

    if account.is_admin != is_admin:
        account.is_admin = is_admin
        await db.flush()
        await db.refresh(account)
        logger.info("Admin status changed", account_id=str(key), is_admin=is_admin)
    return account
