"""Tests for success envelopes and the error middleware."""

import orjson
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.types import Message

from src.core.errors import NotFoundError, UniqueViolationError
from src.core.middleware import ErrorEnvelopeMiddleware
from src.core.responses import created, error_response, no_content, ok, success_payload


class TestSuccessPayload:
    def test_omits_empty_parts(self) -> None:
        assert success_payload() == {}

    def test_message_data_and_extra(self) -> None:
        assert success_payload({"a": 1}, "done", total=3) == {
            "message": "done",
            "data": {"a": 1},
            "total": 3,
        }

    def test_helpers_set_status(self) -> None:
        assert ok().status_code == 200
        assert created(message="x").status_code == 201
        assert no_content().status_code == 204

    def test_error_response(self) -> None:
        response = error_response(NotFoundError("Post not found"))
        assert response.status_code == 404
        assert orjson.loads(response.body) == {
            "error": "NotFoundError",
            "message": "Post not found",
        }


def _app(expose_internal: bool = False) -> FastAPI:
    app = FastAPI()
    app.add_middleware(ErrorEnvelopeMiddleware, expose_internal=expose_internal)

    @app.get("/unique")
    async def unique():
        raise UniqueViolationError("name")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret detail")

    return app


class TestErrorEnvelopeMiddleware:
    def test_datastore_error_translated(self) -> None:
        client = TestClient(_app())
        response = client.get("/unique")
        assert response.status_code == 409
        assert response.json() == {
            "error": "ConflictError",
            "message": "Name already exists",
        }

    def test_unexpected_error_is_generic(self) -> None:
        client = TestClient(_app())
        response = client.get("/boom")
        assert response.status_code == 500
        assert response.json() == {
            "error": "InternalServerError",
            "message": "Something went wrong",
        }

    def test_unexpected_error_exposed_in_development(self) -> None:
        client = TestClient(_app(expose_internal=True))
        assert client.get("/boom").json()["message"] == "secret detail"

    @pytest.mark.asyncio
    async def test_no_second_response_after_start(self) -> None:
        async def streaming_app(scope, receive, send):
            await send({"type": "http.response.start", "status": 200, "headers": []})
            raise RuntimeError("mid-stream failure")

        sent: list[Message] = []

        async def send(message: Message) -> None:
            sent.append(message)

        async def receive() -> Message:
            return {"type": "http.request", "body": b""}

        middleware = ErrorEnvelopeMiddleware(streaming_app)
        await middleware({"type": "http", "path": "/stream"}, receive, send)

        assert [m["type"] for m in sent] == ["http.response.start"]
