"""Tests for access tokens and principal extraction."""

from datetime import timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import ExpiredSignatureError, JWTError, jwt

from src.auth.dependencies import AdminPrincipal, CurrentPrincipal, OptionalPrincipal
from src.auth.permissions import Role
from src.auth.security import (
    create_access_token,
    decode_access_token,
    principal_from_token,
)
from src.config import get_settings
from src.core.errors import AppError
from src.core.responses import error_response


CLAIMS = {"sub": "u1", "email": "alice@example.com", "username": "alice", "role": "AUTHOR"}


class TestAccessToken:
    def test_round_trip_claims(self) -> None:
        payload = decode_access_token(create_access_token(CLAIMS))
        assert payload["sub"] == "u1"
        assert payload["type"] == "access"
        assert "exp" in payload
        assert "iat" in payload

    def test_expired_token(self) -> None:
        token = create_access_token(CLAIMS, expires_delta=timedelta(seconds=-10))
        with pytest.raises(ExpiredSignatureError):
            decode_access_token(token)

    def test_wrong_type_rejected(self) -> None:
        settings = get_settings()
        token = jwt.encode(
            {**CLAIMS, "type": "refresh"},
            settings.auth_secret_key,
            algorithm=settings.auth_algorithm,
        )
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_bad_signature_rejected(self) -> None:
        token = jwt.encode({**CLAIMS, "type": "access"}, "another-secret", "HS256")
        with pytest.raises(JWTError):
            decode_access_token(token)


class TestPrincipalFromToken:
    def test_builds_principal(self) -> None:
        principal = principal_from_token(create_access_token(CLAIMS))
        assert principal.id == "u1"
        assert principal.username == "alice"
        assert principal.role is Role.AUTHOR

    def test_username_defaults_to_email_local_part(self) -> None:
        claims = {k: v for k, v in CLAIMS.items() if k != "username"}
        assert principal_from_token(create_access_token(claims)).username == "alice"

    def test_incomplete_claims(self) -> None:
        with pytest.raises(JWTError):
            principal_from_token(create_access_token({"sub": "u1", "role": "AUTHOR"}))

    def test_unknown_role(self) -> None:
        with pytest.raises(JWTError):
            principal_from_token(create_access_token({**CLAIMS, "role": "EDITOR"}))


@pytest.fixture
def auth_client() -> TestClient:
    app = FastAPI()

    @app.exception_handler(AppError)
    async def _handler(request, exc: AppError):
        return error_response(exc)

    @app.get("/me")
    async def me(principal: CurrentPrincipal) -> dict:
        return {"id": principal.id}

    @app.get("/maybe")
    async def maybe(principal: OptionalPrincipal) -> dict:
        return {"id": principal.id if principal else None}

    @app.get("/admin")
    async def admin_only(principal: AdminPrincipal) -> dict:
        return {"id": principal.id}

    return TestClient(app)


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestDependencies:
    def test_missing_token(self, auth_client: TestClient) -> None:
        response = auth_client.get("/me")
        assert response.status_code == 401
        assert response.json()["message"] == "Access token required"

    def test_invalid_token(self, auth_client: TestClient) -> None:
        response = auth_client.get("/me", headers=_bearer("not-a-jwt"))
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    def test_expired_token(self, auth_client: TestClient) -> None:
        token = create_access_token(CLAIMS, expires_delta=timedelta(seconds=-10))
        response = auth_client.get("/me", headers=_bearer(token))
        assert response.status_code == 401
        assert response.json()["message"] == "Token expired"

    def test_valid_token(self, auth_client: TestClient) -> None:
        response = auth_client.get("/me", headers=_bearer(create_access_token(CLAIMS)))
        assert response.json() == {"id": "u1"}

    def test_non_bearer_scheme_ignored(self, auth_client: TestClient) -> None:
        response = auth_client.get("/maybe", headers={"Authorization": "Basic abc"})
        assert response.json() == {"id": None}

    def test_optional_principal_rejects_bad_token(self, auth_client: TestClient) -> None:
        response = auth_client.get("/maybe", headers=_bearer("garbage"))
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    def test_optional_principal_rejects_expired_token(
        self, auth_client: TestClient
    ) -> None:
        token = create_access_token(CLAIMS, expires_delta=timedelta(seconds=-10))
        response = auth_client.get("/maybe", headers=_bearer(token))
        assert response.status_code == 401
        assert response.json()["message"] == "Token expired"

    def test_optional_principal_anonymous(self, auth_client: TestClient) -> None:
        assert auth_client.get("/maybe").json() == {"id": None}

    def test_admin_dependency_rejects_author(self, auth_client: TestClient) -> None:
        response = auth_client.get("/admin", headers=_bearer(create_access_token(CLAIMS)))
        assert response.status_code == 403
        assert response.json() == {
            "error": "ForbiddenError",
            "message": "Admin access required",
        }
