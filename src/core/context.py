"""Request-scoped context backed by contextvars.

Every request handled by the API gets its own request id, and once the bearer
token is verified, the id of the acting principal. Both are read by the log
processors so that a log line emitted deep inside a service still carries them.
"""

from contextvars import ContextVar
from typing import Any
from uuid import uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
principal_id_var: ContextVar[str | None] = ContextVar("principal_id", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Incoming request ID. A fresh one is generated when empty.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_principal_id() -> str | None:
    """Get the id of the authenticated principal, if any."""
    return principal_id_var.get()


def set_principal_id(principal_id: str | None) -> None:
    principal_id_var.set(str(principal_id) if principal_id is not None else None)


def get_trace_id() -> str | None:
    return trace_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    trace_id_var.set(trace_id)


def get_context() -> dict[str, Any]:
    """Collect the non-empty context values for log enrichment."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    principal_id = get_principal_id()
    if principal_id:
        context["principal_id"] = principal_id

    trace_id = get_trace_id()
    if trace_id:
        context["trace_id"] = trace_id

    return context


def clear_context() -> None:
    """Reset all context variables at the end of a request."""
    request_id_var.set("")
    principal_id_var.set(None)
    trace_id_var.set(None)
