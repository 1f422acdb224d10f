from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from mutabaah_api.core.config import Settings

TOKEN_TYPE = "access"


class TokenError(Exception):
    pass


def create_access_token(*, subject: str, settings: Settings | None = None) -> str:
    settings = settings or Settings()
    issued = datetime.now(UTC)
    expires = issued + timedelta(minutes=int(settings.auth_jwt_exp_minutes))
    payload: dict[str, Any] = {
        "iss": settings.auth_jwt_issuer,
        "sub": str(subject),
        "typ": TOKEN_TYPE,
        "iat": int(issued.timestamp()),
        "exp": int(expires.timestamp()),
    }
    return jwt.encode(payload, settings.auth_jwt_secret, algorithm="HS256")


def decode_token(token: str, *, settings: Settings | None = None) -> str:
    """Returns the user id carried by a valid access token."""
    settings = settings or Settings()
    try:
        claims = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=["HS256"],
            issuer=settings.auth_jwt_issuer,
            options={"require": ["exp", "sub"]},
        )
    except jwt.PyJWTError as e:
        raise TokenError(str(e)) from e
    if claims.get("typ") != TOKEN_TYPE or not claims.get("sub"):
        raise TokenError("not an access token")
    return str(claims["sub"])
