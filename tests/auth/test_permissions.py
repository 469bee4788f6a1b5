"""Tests for auth permissions and guards."""

import pytest

from src.auth.permissions import (
    ROLE_HIERARCHY,
    AuthorizationResult,
    Role,
    get_role_level,
    has_permission,
    is_admin,
    require_admin,
    require_auth,
    require_author,
    require_ownership_or_admin,
    require_role,
)
from src.auth.schemas import Principal
from src.core.errors import ForbiddenError, UnauthorizedError


def _principal(role: Role, user_id: str = "u1") -> Principal:
    return Principal(id=user_id, email="u@example.com", username="u", role=role)


class TestRole:
    """Tests for Role enum."""

    def test_role_values(self) -> None:
        assert Role.AUTHOR.value == "AUTHOR"
        assert Role.ADMIN.value == "ADMIN"

    def test_role_hierarchy(self) -> None:
        assert ROLE_HIERARCHY[Role.AUTHOR] == 1
        assert ROLE_HIERARCHY[Role.ADMIN] == 2

    def test_all_roles_have_levels(self) -> None:
        for role in Role:
            assert role in ROLE_HIERARCHY


class TestGetRoleLevel:
    @pytest.mark.parametrize(
        "role,expected_level",
        [
            (Role.AUTHOR, 1),
            (Role.ADMIN, 2),
            ("AUTHOR", 1),
            ("ADMIN", 2),
        ],
    )
    def test_known_roles(self, role: Role | str, expected_level: int) -> None:
        assert get_role_level(role) == expected_level

    def test_invalid_role_returns_zero(self) -> None:
        """Unknown roles (including wrong case) have no level."""
        assert get_role_level("superadmin") == 0
        assert get_role_level("admin") == 0


class TestHasPermission:
    @pytest.mark.parametrize(
        "user_role,required_role,expected",
        [
            (Role.ADMIN, Role.AUTHOR, True),
            (Role.ADMIN, Role.ADMIN, True),
            (Role.AUTHOR, Role.AUTHOR, True),
            (Role.AUTHOR, Role.ADMIN, False),
            ("AUTHOR", "ADMIN", False),
            ("nobody", "AUTHOR", False),
        ],
    )
    def test_truth_table(
        self, user_role: Role | str, required_role: Role | str, expected: bool
    ) -> None:
        assert has_permission(user_role, required_role) is expected

    def test_is_admin(self) -> None:
        assert is_admin(Role.ADMIN) is True
        assert is_admin("ADMIN") is True
        assert is_admin(Role.AUTHOR) is False


class TestRequireAuth:
    def test_missing_principal_is_401(self) -> None:
        result = require_auth(None)
        assert result.authorized is False
        assert isinstance(result.error, UnauthorizedError)
        assert result.response == {
            "error": "UnauthorizedError",
            "message": "Authentication required",
        }

    def test_principal_present(self) -> None:
        result = require_auth(_principal(Role.AUTHOR))
        assert result.authorized is True
        assert result.response is None


class TestRequireRole:
    def test_unauthenticated_is_401_before_role_check(self) -> None:
        result = require_role(None, Role.ADMIN)
        assert isinstance(result.error, UnauthorizedError)

    def test_admin_required_message(self) -> None:
        result = require_admin(_principal(Role.AUTHOR))
        assert result.authorized is False
        assert isinstance(result.error, ForbiddenError)
        assert result.error.message == "Admin access required"

    def test_admin_satisfies_author(self) -> None:
        assert require_author(_principal(Role.ADMIN)).authorized is True

    def test_author_satisfies_author(self) -> None:
        assert require_role(_principal(Role.AUTHOR), Role.AUTHOR).authorized is True


class TestRequireOwnershipOrAdmin:
    def test_owner_allowed(self) -> None:
        assert require_ownership_or_admin(_principal(Role.AUTHOR, "u1"), "u1").authorized

    def test_admin_allowed_for_any_owner(self) -> None:
        assert require_ownership_or_admin(_principal(Role.ADMIN, "a1"), "u1").authorized

    def test_other_author_denied(self) -> None:
        result = require_ownership_or_admin(_principal(Role.AUTHOR, "u2"), "u1")
        assert result.authorized is False
        assert result.error.status_code == 403
        assert result.error.message == "Not authorized to access this resource"

    def test_unauthenticated_is_401(self) -> None:
        result = require_ownership_or_admin(None, "u1")
        assert result.error.status_code == 401


class TestAuthorizationResult:
    def test_raise_if_denied_raises_the_error(self) -> None:
        result = require_admin(_principal(Role.AUTHOR))
        with pytest.raises(ForbiddenError, match="Admin access required"):
            result.raise_if_denied()

    def test_raise_if_denied_noop_when_allowed(self) -> None:
        AuthorizationResult.allow().raise_if_denied()
