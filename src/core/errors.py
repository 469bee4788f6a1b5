"""Application error hierarchy and boundary translation.

Services raise `AppError` subclasses; each one knows its HTTP status and
renders to the error envelope `{"error": <Kind>, "message": ..., "details": ...}`.

Anything else that escapes a route (datastore failures, JWT decode errors,
framework HTTP errors, bugs) goes through `translate_exception`, which maps it
to the closest `AppError`.
"""

from typing import Any

from jose import ExpiredSignatureError, JWTError
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException


# ==============================================================================
# Application Errors
# ==============================================================================


class AppError(Exception):
    """Base error rendered as the error envelope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"
    # Non-operational errors are bugs; their message is never shown to clients
    operational: bool = True

    def __init__(
        self,
        message: str | None = None,
        details: Any = None,
        status_code: int | None = None,
    ):
        self.message = message or self.default_message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.kind, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class BadRequestError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized to access this resource"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class ValidationError(AppError):
    """Request payload failed validation; `details` lists `{field, message}`."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class InternalServerError(AppError):
    operational = False


# ==============================================================================
# Datastore Errors
# ==============================================================================


class DatastoreError(Exception):
    """Base error raised by datastore adapters."""


class RecordNotFoundError(DatastoreError):
    pass


class UniqueViolationError(DatastoreError):
    """A uniqueness constraint on `field` was violated."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Unique constraint failed on {field}")


class ForeignKeyViolationError(DatastoreError):
    pass


# ==============================================================================
# Translation
# ==============================================================================


_STATUS_TO_ERROR: dict[int, type[AppError]] = {
    status.HTTP_400_BAD_REQUEST: BadRequestError,
    status.HTTP_401_UNAUTHORIZED: UnauthorizedError,
    status.HTTP_403_FORBIDDEN: ForbiddenError,
    status.HTTP_404_NOT_FOUND: NotFoundError,
    status.HTTP_409_CONFLICT: ConflictError,
    422: ValidationError,
}


def error_for_status(status_code: int, message: str | None = None) -> AppError:
    """Build the closest `AppError` for an arbitrary HTTP status.

    The original status code is kept even when the kind is only approximate
    (a 405 becomes a `BadRequestError` with status 405).
    """
    error_class = _STATUS_TO_ERROR.get(status_code)
    if error_class is None:
        error_class = (
            InternalServerError
            if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR
            else BadRequestError
        )
    return error_class(message, status_code=status_code)


def translate_exception(exc: BaseException, *, expose_internal: bool = False) -> AppError:
    """Map any exception to an `AppError`.

    Args:
        exc: The exception that escaped a route.
        expose_internal: Show the real message of unexpected errors
            (development only).
    """
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, UniqueViolationError):
        field = exc.field[:1].upper() + exc.field[1:]
        return ConflictError(f"{field} already exists")
    if isinstance(exc, ForeignKeyViolationError):
        return BadRequestError("Invalid reference to related resource")
    if isinstance(exc, RecordNotFoundError):
        return NotFoundError("Resource not found")
    # ExpiredSignatureError subclasses JWTError, so it is checked first
    if isinstance(exc, ExpiredSignatureError):
        return UnauthorizedError("Token expired")
    if isinstance(exc, JWTError):
        return UnauthorizedError("Invalid token")
    if isinstance(exc, StarletteHTTPException):
        return error_for_status(exc.status_code, str(exc.detail))

    message = str(exc) if expose_internal and str(exc) else None
    return InternalServerError(message)


def validation_details(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Flatten pydantic/FastAPI validation errors to `[{field, message}]`."""
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        # Drop the request location prefix ("body", "query", "path")
        if len(loc) > 1 and loc[0] in {"body", "query", "path", "header"}:
            loc = loc[1:]
        details.append(
            {
                "field": ".".join(loc),
                "message": err.get("msg", "Invalid value"),
            }
        )
    return details
