"""Shared fixtures.

The app runs against the in-memory datastore and cache; every `client`
fixture enters a fresh lifespan, so each test starts from empty storage.
"""

import os
import tempfile
from collections.abc import Callable, Iterator
from typing import Any

import pytest


os.environ["ENVIRONMENT"] = "testing"
os.environ["DATASTORE_BACKEND"] = "memory"
os.environ["CACHE_BACKEND"] = "memory"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="inkwell-logs-")
os.environ["AUTH_SECRET_KEY"] = "test-secret-key-with-at-least-32-characters"

from src.config import get_settings  # noqa: E402


get_settings.cache_clear()

from fastapi.testclient import TestClient  # noqa: E402

from src.auth.permissions import Role  # noqa: E402
from src.auth.schemas import Principal  # noqa: E402
from src.auth.security import create_access_token  # noqa: E402
from src.core.cache import MemoryResponseCache  # noqa: E402
from src.datastore import MemoryDatastore  # noqa: E402
from src.main import app  # noqa: E402


@pytest.fixture
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def datastore() -> MemoryDatastore:
    return MemoryDatastore()


@pytest.fixture
def cache() -> MemoryResponseCache:
    return MemoryResponseCache(default_ttl=300, max_size=1000)


# ==============================================================================
# Principals and tokens
# ==============================================================================


def make_principal(
    user_id: str = "user-1",
    role: Role = Role.AUTHOR,
    username: str | None = None,
) -> Principal:
    username = username or user_id
    return Principal(
        id=user_id, email=f"{username}@example.com", username=username, role=role
    )


def auth_headers(principal: Principal) -> dict[str, str]:
    token = create_access_token(
        {
            "sub": principal.id,
            "email": principal.email,
            "username": principal.username,
            "role": principal.role.value,
        }
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def principal_factory() -> Callable[..., Principal]:
    return make_principal


@pytest.fixture
def headers_for() -> Callable[[Principal], dict[str, str]]:
    return auth_headers


@pytest.fixture
def author() -> Principal:
    return make_principal("author-1", Role.AUTHOR, "alice")


@pytest.fixture
def other_author() -> Principal:
    return make_principal("author-2", Role.AUTHOR, "bob")


@pytest.fixture
def admin() -> Principal:
    return make_principal("admin-1", Role.ADMIN, "root")


@pytest.fixture
def author_headers(author: Principal) -> dict[str, str]:
    return auth_headers(author)


@pytest.fixture
def other_headers(other_author: Principal) -> dict[str, str]:
    return auth_headers(other_author)


@pytest.fixture
def admin_headers(admin: Principal) -> dict[str, str]:
    return auth_headers(admin)


# ==============================================================================
# API helpers
# ==============================================================================


@pytest.fixture
def create_post(
    client: TestClient, author_headers: dict[str, str]
) -> Callable[..., dict[str, Any]]:
    """Create a post through the API and return its JSON."""
    counter = iter(range(1, 1000))

    def _create(headers: dict[str, str] | None = None, **fields: Any) -> dict[str, Any]:
        body = {
            "title": f"Post number {next(counter)}",
            "content": "Some content",
            "published": True,
        }
        body.update(fields)
        response = client.post("/posts", json=body, headers=headers or author_headers)
        assert response.status_code == 201, response.text
        return response.json()["post"]

    return _create


@pytest.fixture
def create_comment(
    client: TestClient, other_headers: dict[str, str]
) -> Callable[..., dict[str, Any]]:
    """Create a comment (or a reply when `parent_id` is given)."""

    def _create(
        post_id: str,
        content: str = "Nice post",
        parent_id: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        path = f"/posts/{post_id}/comments"
        if parent_id:
            path += f"/{parent_id}/reply"
        response = client.post(
            path, json={"content": content}, headers=headers or other_headers
        )
        assert response.status_code == 201, response.text
        return response.json()["comment"]

    return _create
