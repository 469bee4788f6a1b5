"""HTTP middleware.

- `RequestContextMiddleware`: request id propagation and request logging
- `ErrorEnvelopeMiddleware`: last-resort translation of escaped exceptions
  into the error envelope
"""

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from src.core.context import clear_context, set_request_id, set_trace_id
from src.core.errors import translate_exception
from src.core.responses import error_response


logger = structlog.get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Set up request context and log request start/finish with timing."""

    REQUEST_ID_HEADER = "X-Request-ID"
    TRACE_ID_HEADER = "X-Trace-ID"
    TRACEPARENT_HEADER = "traceparent"

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = exclude_paths or ["/health"]

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start_time = time.perf_counter()

        request_id = set_request_id(request.headers.get(self.REQUEST_ID_HEADER))
        trace_id = request.headers.get(self.TRACE_ID_HEADER) or self._extract_traceparent(
            request.headers.get(self.TRACEPARENT_HEADER)
        )
        if trace_id:
            set_trace_id(trace_id)

        request.state.request_id = request_id

        should_log = self.log_requests and not self._should_exclude(request.url.path)
        if should_log:
            logger.info(
                "request_started",
                method=request.method,
                path=request.url.path,
                query=str(request.query_params) if request.query_params else None,
                client_ip=self._get_client_ip(request),
            )

        try:
            response = await call_next(request)

            if should_log:
                duration_ms = (time.perf_counter() - start_time) * 1000
                log_method = (
                    logger.warning if response.status_code >= 400 else logger.info
                )
                log_method(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration_ms, 2),
                )

            response.headers[self.REQUEST_ID_HEADER] = request_id
            return response

        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.exception(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                duration_ms=round(duration_ms, 2),
            )
            raise

        finally:
            clear_context()

    def _should_exclude(self, path: str) -> bool:
        return any(path.startswith(excluded) for excluded in self.exclude_paths)

    def _get_client_ip(self, request: Request) -> str | None:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        if request.client:
            return request.client.host
        return None

    def _extract_traceparent(self, traceparent: str | None) -> str | None:
        """Extract the trace id from a W3C `traceparent` header.

        Format: {version}-{trace-id}-{parent-id}-{trace-flags}
        """
        if not traceparent:
            return None
        parts = traceparent.split("-")
        return parts[1] if len(parts) >= 2 else None


class ErrorEnvelopeMiddleware:
    """Translate exceptions that escaped the routing layer.

    Datastore errors, JWT errors and unexpected exceptions become the
    `{"error", "message"}` envelope. Stack traces are logged, never returned.
    Once the response has started nothing more can be sent, so the error is
    only logged.
    """

    def __init__(self, app: ASGIApp, expose_internal: bool = False) -> None:
        self.app = app
        self.expose_internal = expose_internal

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started:
                logger.exception(
                    "error_after_response_started",
                    path=scope.get("path"),
                    error_type=type(exc).__name__,
                )
                return

            error = translate_exception(exc, expose_internal=self.expose_internal)
            if error.operational:
                logger.warning(
                    "request_error",
                    path=scope.get("path"),
                    error=error.kind,
                    error_message=error.message,
                    source=type(exc).__name__,
                )
            else:
                logger.exception(
                    "unhandled_exception",
                    path=scope.get("path"),
                    error_type=type(exc).__name__,
                )

            response = error_response(error)
            await response(scope, receive, send)
