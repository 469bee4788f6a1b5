"""Category API endpoints."""

from fastapi import APIRouter, Request

from src.auth.dependencies import CurrentPrincipal
from src.core.cache import ResourceKind
from src.core.dependencies import ResponseCacheDep, cached_response
from src.core.responses import created, ok

from .dependencies import CategoryServiceDep
from .schemas import CategoryRequest


router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", summary="List categories")
async def list_categories(
    request: Request,
    category_service: CategoryServiceDep,
    cache: ResponseCacheDep,
):
    """All categories sorted by name."""

    async def build() -> dict:
        categories = await category_service.list_categories()
        return {"categories": [c.model_dump(mode="json") for c in categories]}

    return ok(**await cached_response(cache, ResourceKind.CATEGORY, request, build))


@router.post("", summary="Create category")
async def create_category(
    data: CategoryRequest,
    category_service: CategoryServiceDep,
    principal: CurrentPrincipal,
):
    category = await category_service.create_category(principal, data.name)
    return created(
        message="Category created successfully",
        category=category.model_dump(mode="json"),
    )


@router.put("/{category_id}", summary="Rename category")
async def update_category(
    category_id: str,
    data: CategoryRequest,
    category_service: CategoryServiceDep,
    principal: CurrentPrincipal,
):
    category = await category_service.update_category(principal, category_id, data.name)
    return ok(
        message="Category updated successfully",
        category=category.model_dump(mode="json"),
    )


@router.delete("/{category_id}", summary="Delete category")
async def delete_category(
    category_id: str,
    category_service: CategoryServiceDep,
    principal: CurrentPrincipal,
):
    await category_service.delete_category(principal, category_id)
    return ok(message="Category deleted successfully")
