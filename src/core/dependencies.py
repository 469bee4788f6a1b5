"""FastAPI dependencies shared by every feature router."""

from collections.abc import Awaitable, Callable
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status

from src.core.cache import ResourceKind, ResponseCache, build_cache_key


def get_app_service(request: Request, name: str) -> Any:
    """Fetch a service the lifespan stored on `app.state`.

    Raises:
        HTTPException: 503 while the service is not initialized
    """
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not available",
        )
    return service


async def get_response_cache(request: Request) -> ResponseCache:
    return get_app_service(request, "response_cache")


ResponseCacheDep = Annotated[ResponseCache, Depends(get_response_cache)]


async def cached_response(
    cache: ResponseCache,
    kind: ResourceKind,
    request: Request,
    factory: Callable[[], Awaitable[Any]],
    ttl: int | None = None,
) -> Any:
    """Serve a GET body from the cache, keyed by kind, path and query."""
    key = build_cache_key(kind, request.url.path, request.query_params.multi_items())
    return await cache.get_or_set(key, factory, ttl)
