"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Principal extraction from the bearer token
- Role requirements built on the guards in `src.auth.permissions`
"""

from typing import Annotated

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError

from src.auth.permissions import (
    Role,
    require_role,
)
from src.auth.schemas import Principal
from src.auth.security import principal_from_token
from src.core.context import set_principal_id
from src.core.errors import UnauthorizedError


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def _verify(token: str) -> Principal:
    try:
        principal = principal_from_token(token)
    except ExpiredSignatureError as e:
        raise UnauthorizedError("Token expired") from e
    except JWTError as e:
        raise UnauthorizedError("Invalid token") from e

    set_principal_id(principal.id)
    return principal


async def get_current_principal(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Principal:
    """Get the authenticated caller.

    Raises:
        UnauthorizedError: If the token is missing, invalid, or expired
    """
    if not token:
        raise UnauthorizedError("Access token required")
    return _verify(token)


async def get_optional_principal(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Principal | None:
    """Get the caller if a token was sent, None for anonymous requests.

    Raises:
        UnauthorizedError: If a token was sent but is invalid or expired
    """
    if not token:
        return None
    return _verify(token)


def require_permission(required_role: Role):
    """Create dependency requiring at least `required_role`.

    Example:
        @router.post("")
        async def create_post(
            principal: Annotated[Principal, Depends(require_permission(Role.AUTHOR))]
        ):
            # Accessible by AUTHOR and ADMIN
            ...
    """

    async def permission_checker(
        principal: Annotated[Principal, Depends(get_current_principal)],
    ) -> Principal:
        require_role(principal, required_role).raise_if_denied()
        return principal

    return permission_checker


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
OptionalPrincipal = Annotated[Principal | None, Depends(get_optional_principal)]
AuthorPrincipal = Annotated[Principal, Depends(require_permission(Role.AUTHOR))]
AdminPrincipal = Annotated[Principal, Depends(require_permission(Role.ADMIN))]
