# Core infrastructure
from src.core.cache import (
    MemoryResponseCache,
    RedisResponseCache,
    ResourceKind,
    ResponseCache,
    build_cache_key,
)
from src.core.context import (
    clear_context,
    get_context,
    get_principal_id,
    get_request_id,
    set_principal_id,
    set_request_id,
)
from src.core.errors import (
    AppError,
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InternalServerError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import ErrorEnvelopeMiddleware, RequestContextMiddleware


__all__ = [
    "AppError",
    "BadRequestError",
    "ConflictError",
    "ErrorEnvelopeMiddleware",
    "ForbiddenError",
    "InternalServerError",
    "MemoryResponseCache",
    "NotFoundError",
    "RedisResponseCache",
    "RequestContextMiddleware",
    "ResourceKind",
    "ResponseCache",
    "UnauthorizedError",
    "ValidationError",
    "build_cache_key",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_principal_id",
    "get_request_id",
    "set_principal_id",
    "set_request_id",
]
