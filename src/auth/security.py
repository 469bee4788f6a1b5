"""JWT access tokens.

Tokens are issued elsewhere; this module verifies them and can mint tokens for
tests and tooling. Claims: `sub`, `email`, `username`, `role`, `type="access"`.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from src.auth.schemas import Principal
from src.config.settings import get_settings


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token.

    Args:
        data: Claims, typically {"sub", "email", "username", "role"}
        expires_delta: Token lifetime (default from settings). A negative
            delta produces an already expired token.

    Returns:
        Encoded JWT string
    """
    settings = get_settings()

    to_encode = data.copy()
    now = datetime.now(UTC)
    expire = now + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=settings.auth_access_token_expire_minutes)
    )
    to_encode.update({"exp": expire, "iat": now, "type": "access"})

    return jwt.encode(
        to_encode,
        settings.auth_secret_key,
        algorithm=settings.auth_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        ExpiredSignatureError: If the token has expired
        JWTError: If the token is invalid or not an access token
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )

    if payload.get("type") != "access":
        msg = "Invalid token type: expected 'access'"
        raise JWTError(msg)

    return payload


def principal_from_token(token: str) -> Principal:
    """Verify a token and build the caller's `Principal`.

    Raises:
        JWTError: If the token is invalid or its claims are incomplete
    """
    payload = decode_access_token(token)
    try:
        return Principal(
            id=str(payload["sub"]),
            email=payload["email"],
            username=payload.get("username") or payload["email"].split("@")[0],
            role=payload["role"],
        )
    except (KeyError, ValueError) as e:
        msg = "Token claims are incomplete"
        raise JWTError(msg) from e
