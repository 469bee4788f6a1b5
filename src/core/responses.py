"""Success and error response envelopes.

Success bodies look like `{"message": ..., "data": ..., **extra}` where every
part is optional; error bodies come from `AppError.to_payload()`.
"""

from typing import Any

from fastapi import Response, status
from fastapi.responses import ORJSONResponse

from src.core.errors import AppError


def success_payload(
    data: Any = None,
    message: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if message is not None:
        payload["message"] = message
    if data is not None:
        payload["data"] = data
    payload.update(extra)
    return payload


def success_response(
    data: Any = None,
    message: str | None = None,
    status_code: int = status.HTTP_200_OK,
    **extra: Any,
) -> ORJSONResponse:
    """Render a success envelope with the given status."""
    return ORJSONResponse(
        status_code=status_code,
        content=success_payload(data, message, **extra),
    )


def ok(data: Any = None, message: str | None = None, **extra: Any) -> ORJSONResponse:
    return success_response(data, message, status.HTTP_200_OK, **extra)


def created(
    data: Any = None, message: str | None = None, **extra: Any
) -> ORJSONResponse:
    return success_response(data, message, status.HTTP_201_CREATED, **extra)


def no_content() -> Response:
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def error_response(error: AppError, headers: dict[str, str] | None = None) -> ORJSONResponse:
    """Render an `AppError` as the error envelope."""
    return ORJSONResponse(
        status_code=error.status_code,
        content=error.to_payload(),
        headers=headers,
    )
