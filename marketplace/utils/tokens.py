from datetime import datetime, timezone

import jwt

from marketplace.config import Settings

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    pass


def _issue(settings: Settings, user_id: int, role: str, token_type: str, ttl, **extra) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "type": token_type,
        "iat": now,
        "exp": now + ttl,
        **extra,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(settings: Settings, user_id: int, role: str) -> str:
    return _issue(settings, user_id, role, ACCESS, settings.access_token_ttl)


def create_refresh_token(settings: Settings, user_id: int, role: str, version: int = 0) -> str:
    return _issue(settings, user_id, role, REFRESH, settings.refresh_token_ttl, ver=version)


def decode_token(settings: Settings, token: str, expected_type: str = ACCESS) -> dict:
    """Verify signature, expiry and token type. Returns the claims."""
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp", "type"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenError("token expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenError(f"invalid token: {e}") from e

    if claims.get("type") != expected_type:
        raise TokenError(f"expected {expected_type} token")
    try:
        claims["sub"] = int(claims["sub"])
    except (TypeError, ValueError) as e:
        raise TokenError("invalid subject") from e
    return claims
