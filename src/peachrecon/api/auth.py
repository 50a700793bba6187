"""Authentication dependencies."""

from dataclasses import dataclass

import jwt
import sentry_sdk
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from peachrecon.core.errors import UnauthorizedError
from peachrecon.core.logging import get_logger
from peachrecon.core.security import decode_access_token

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
    """The authenticated user a request acts on behalf of."""

    user_id: str
    email: str | None = None
    role: str | None = None


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Actor:
    """Dependency resolving the bearer token into an Actor."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("No authorization header")

    try:
        claims = decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        logger.warning("auth.invalid_token", error=type(exc).__name__)
        raise UnauthorizedError("Unauthorized") from exc

    sentry_sdk.set_user({"id": str(claims["sub"])})
    return Actor(
        user_id=str(claims["sub"]),
        email=claims.get("email"),
        role=claims.get("role"),
    )
