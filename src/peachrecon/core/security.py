"""Bearer token verification (tokens are issued by Supabase Auth)."""

import os
from typing import Any

import jwt

JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "dev-jwt-secret-change-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authenticated")


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token. Raises jwt.PyJWTError when invalid."""
    return jwt.decode(
        token,
        JWT_SECRET,
        algorithms=[JWT_ALGORITHM],
        audience=JWT_AUDIENCE,
        options={"require": ["sub", "exp"]},
    )


def create_access_token(claims: dict[str, Any]) -> str:
    """Sign claims with the shared secret (used by scripts and tests)."""
    payload = {"aud": JWT_AUDIENCE, **claims}
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)
