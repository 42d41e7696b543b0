"""
Access tokens

HS256 JWTs whose ``sub`` claim is the account id. Issued once a sign-in has
been verified by the identity provider; verified on every admin request.
"""

from datetime import timedelta, timezone
from typing import Any, Dict, Optional
import uuid

import jwt
import structlog

from src.analytics.exceptions import AuthenticationError
from src.config import get_settings
from src.utils import utcnow

logger = structlog.get_logger(__name__)


def create_access_token(account_id: uuid.UUID, expires_in: Optional[timedelta] = None) -> str:
    """Sign an access token for ``account_id``."""
    security = get_settings().security
    issued_at = utcnow().replace(tzinfo=timezone.utc)
    expires_at = issued_at + (expires_in or timedelta(hours=security.jwt_expiration_hours))

    payload = {
        "sub": str(account_id),
        "iat": issued_at,
        "exp": expires_at,
    }
    return jwt.encode(
        payload,
        security.jwt_secret_key.get_secret_value(),
        algorithm=security.jwt_algorithm,
    )


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    Raises:
        AuthenticationError: token is expired, tampered with or malformed
    """
    security = get_settings().security
    try:
        claims = jwt.decode(
            token,
            security.jwt_secret_key.get_secret_value(),
            algorithms=[security.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Rejected access token", error=str(e))
        raise AuthenticationError("Invalid token") from None
    return claims


def account_id_from_claims(claims: Dict[str, Any]) -> uuid.UUID:
    try:
        return uuid.UUID(str(claims["sub"]))
    except (KeyError, ValueError):
        raise AuthenticationError("Invalid token subject") from None
