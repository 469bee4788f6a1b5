"""Tests for the error hierarchy and exception translation."""

import pytest
from jose import ExpiredSignatureError, JWTError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.core.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    ForeignKeyViolationError,
    InternalServerError,
    NotFoundError,
    RecordNotFoundError,
    UnauthorizedError,
    UniqueViolationError,
    ValidationError,
    error_for_status,
    translate_exception,
    validation_details,
)


class TestAppError:
    @pytest.mark.parametrize(
        "error_class,status_code",
        [
            (BadRequestError, 400),
            (UnauthorizedError, 401),
            (ForbiddenError, 403),
            (NotFoundError, 404),
            (ConflictError, 409),
            (ValidationError, 400),
            (InternalServerError, 500),
        ],
    )
    def test_status_codes(self, error_class, status_code: int) -> None:
        assert error_class().status_code == status_code

    def test_payload_without_details(self) -> None:
        assert NotFoundError("Post not found").to_payload() == {
            "error": "NotFoundError",
            "message": "Post not found",
        }

    def test_payload_with_details(self) -> None:
        details = [{"field": "content", "message": "required"}]
        assert ValidationError(details=details).to_payload() == {
            "error": "ValidationError",
            "message": "Validation failed",
            "details": details,
        }

    def test_internal_error_is_not_operational(self) -> None:
        assert InternalServerError().operational is False
        assert NotFoundError().operational is True


class TestTranslateException:
    def test_app_error_passes_through(self) -> None:
        error = ForbiddenError("nope")
        assert translate_exception(error) is error

    def test_unique_violation_is_conflict(self) -> None:
        error = translate_exception(UniqueViolationError("slug"))
        assert isinstance(error, ConflictError)
        assert error.message == "Slug already exists"

    def test_foreign_key_violation_is_bad_request(self) -> None:
        error = translate_exception(ForeignKeyViolationError("post_id"))
        assert isinstance(error, BadRequestError)
        assert error.message == "Invalid reference to related resource"

    def test_record_not_found(self) -> None:
        assert isinstance(translate_exception(RecordNotFoundError("x")), NotFoundError)

    def test_jwt_errors(self) -> None:
        assert translate_exception(ExpiredSignatureError()).message == "Token expired"
        assert translate_exception(JWTError("bad")).message == "Invalid token"

    def test_framework_http_error_keeps_status(self) -> None:
        error = translate_exception(StarletteHTTPException(405, "Method Not Allowed"))
        assert isinstance(error, BadRequestError)
        assert error.status_code == 405

    def test_unknown_error_hides_message(self) -> None:
        error = translate_exception(RuntimeError("db password is hunter2"))
        assert isinstance(error, InternalServerError)
        assert error.message == "Something went wrong"

    def test_unknown_error_exposed_in_development(self) -> None:
        error = translate_exception(RuntimeError("boom"), expose_internal=True)
        assert error.message == "boom"


class TestErrorForStatus:
    def test_known_status(self) -> None:
        assert isinstance(error_for_status(404), NotFoundError)

    def test_server_error_range(self) -> None:
        error = error_for_status(503, "Service not available")
        assert isinstance(error, InternalServerError)
        assert error.status_code == 503


def test_validation_details_strip_location_prefix() -> None:
    errors = [
        {"loc": ("body", "content"), "msg": "Field required"},
        {"loc": ("query", "page"), "msg": "Input should be greater than or equal to 1"},
    ]
    assert validation_details(errors) == [
        {"field": "content", "message": "Field required"},
        {"field": "page", "message": "Input should be greater than or equal to 1"},
    ]
