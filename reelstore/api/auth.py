"""
Bearer-token authentication.

Tokens are HS256 JWTs whose ``sub`` claim is the user's UUID. Issuing
tokens belongs to the login flow; ``make_jwt`` is here for tests and
local tooling.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt

from ..core.pipeline.errors import AuthenticationError

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = "HS256"
DEFAULT_ISSUER = "reelstore"


def get_bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise AuthenticationError("Couldn't find JWT")

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Malformed authorization header")

    return token


def make_jwt(
    user_id: UUID,
    secret: str,
    expires_in: timedelta = timedelta(hours=1),
    algorithm: str = DEFAULT_ALGORITHM,
    issuer: str = DEFAULT_ISSUER,
) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "iss": issuer,
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(claims, secret, algorithm=algorithm)


def validate_jwt(
    token: str,
    secret: str,
    algorithm: str = DEFAULT_ALGORITHM,
    issuer: str = DEFAULT_ISSUER,
) -> UUID:
    """
    Verify signature, expiry and issuer; return the user ID.

    Raises:
        AuthenticationError: token is invalid or has no usable subject
    """
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            issuer=issuer,
            options={"require_sub": True, "require_exp": True},
        )
    except JWTError as e:
        logger.warning("Rejected bearer token", extra={"error": str(e)})
        raise AuthenticationError("Invalid JWT")

    try:
        return UUID(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError("Invalid user ID in JWT")
