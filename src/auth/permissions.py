"""Role-based access control for Inkwell.

Hierarchical permission system:
- ADMIN (level 2): Moderation and taxonomy management, any post
- AUTHOR (level 1): Write and manage own posts and comments

Guards never raise. They return an `AuthorizationResult`; the HTTP layer
raises `result.error` when the result is a denial.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from src.core.errors import AppError, ForbiddenError, UnauthorizedError


if TYPE_CHECKING:
    from src.auth.schemas import Principal


class Role(str, Enum):
    """User roles with hierarchical levels.

    ADMIN can do everything AUTHOR can do, and more.
    """

    AUTHOR = "AUTHOR"
    ADMIN = "ADMIN"


# Role hierarchy mapping (role -> permission level)
ROLE_HIERARCHY: dict[Role, int] = {
    Role.AUTHOR: 1,
    Role.ADMIN: 2,
}

# Denial message per required role
ROLE_DENIAL_MESSAGES: dict[Role, str] = {
    Role.ADMIN: "Admin access required",
    Role.AUTHOR: "AUTHOR access required",
}

AUTHENTICATION_REQUIRED = "Authentication required"
OWNERSHIP_REQUIRED = "Not authorized to access this resource"


def get_role_level(role: Role | str) -> int:
    """Get the permission level for a role.

    Args:
        role: Role enum or string representation

    Returns:
        Permission level, 0 for unknown roles
    """
    if isinstance(role, str):
        try:
            role = Role(role)
        except ValueError:
            return 0
    return ROLE_HIERARCHY.get(role, 0)


def has_permission(user_role: Role | str, required_role: Role | str) -> bool:
    """Check if a role satisfies a requirement.

    Examples:
        >>> has_permission(Role.ADMIN, Role.AUTHOR)
        True
        >>> has_permission(Role.AUTHOR, Role.ADMIN)
        False
        >>> has_permission("AUTHOR", "AUTHOR")
        True
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_admin(role: Role | str) -> bool:
    """Check if role is ADMIN."""
    if isinstance(role, str):
        return role == Role.ADMIN.value
    return role == Role.ADMIN


# ==============================================================================
# Guards
# ==============================================================================


@dataclass(frozen=True)
class AuthorizationResult:
    """Outcome of an authorization guard."""

    authorized: bool
    error: AppError | None = None

    @property
    def response(self) -> dict[str, Any] | None:
        """Error envelope payload for a denial, None when authorized."""
        return self.error.to_payload() if self.error else None

    def raise_if_denied(self) -> None:
        if not self.authorized and self.error is not None:
            raise self.error

    @classmethod
    def allow(cls) -> "AuthorizationResult":
        return cls(authorized=True)

    @classmethod
    def deny(cls, error: AppError) -> "AuthorizationResult":
        return cls(authorized=False, error=error)


def require_auth(principal: "Principal | None") -> AuthorizationResult:
    if principal is None:
        return AuthorizationResult.deny(UnauthorizedError(AUTHENTICATION_REQUIRED))
    return AuthorizationResult.allow()


def require_role(
    principal: "Principal | None", required_role: Role
) -> AuthorizationResult:
    """Require an authenticated principal at or above `required_role`."""
    result = require_auth(principal)
    if not result.authorized:
        return result

    if not has_permission(principal.role, required_role):
        return AuthorizationResult.deny(
            ForbiddenError(ROLE_DENIAL_MESSAGES[required_role])
        )
    return AuthorizationResult.allow()


def require_admin(principal: "Principal | None") -> AuthorizationResult:
    return require_role(principal, Role.ADMIN)


def require_author(principal: "Principal | None") -> AuthorizationResult:
    return require_role(principal, Role.AUTHOR)


def require_ownership_or_admin(
    principal: "Principal | None", owner_id: str
) -> AuthorizationResult:
    """Allow the resource owner or any ADMIN."""
    result = require_auth(principal)
    if not result.authorized:
        return result

    if principal.id == owner_id or is_admin(principal.role):
        return AuthorizationResult.allow()
    return AuthorizationResult.deny(ForbiddenError(OWNERSHIP_REQUIRED))
