"""Tag API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query, Request

from src.auth.dependencies import CurrentPrincipal
from src.core.cache import ResourceKind
from src.core.dependencies import ResponseCacheDep, cached_response
from src.core.responses import created, ok

from .dependencies import TagServiceDep
from .schemas import TagRequest


router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("", summary="List tags")
async def list_tags(
    request: Request,
    tag_service: TagServiceDep,
    cache: ResponseCacheDep,
    search: Annotated[str | None, Query()] = None,
    popular: Annotated[bool, Query()] = False,
):
    """Tags with post counts, by name or (popular=true) by usage."""

    async def build() -> dict:
        tags = await tag_service.list_tags(search, popular)
        return {"tags": [tag.model_dump(mode="json") for tag in tags]}

    return ok(**await cached_response(cache, ResourceKind.TAG, request, build))


@router.post("", summary="Create tag")
async def create_tag(
    data: TagRequest,
    tag_service: TagServiceDep,
    principal: CurrentPrincipal,
):
    tag = await tag_service.create_tag(principal, data.name)
    return created(message="Tag created successfully", tag=tag.model_dump(mode="json"))


@router.put("/{tag_id}", summary="Rename tag")
async def update_tag(
    tag_id: str,
    data: TagRequest,
    tag_service: TagServiceDep,
    principal: CurrentPrincipal,
):
    tag = await tag_service.update_tag(principal, tag_id, data.name)
    return ok(message="Tag updated successfully", tag=tag.model_dump(mode="json"))


@router.delete("/{tag_id}", summary="Delete tag")
async def delete_tag(
    tag_id: str,
    tag_service: TagServiceDep,
    principal: CurrentPrincipal,
):
    await tag_service.delete_tag(principal, tag_id)
    return ok(message="Tag deleted successfully")
