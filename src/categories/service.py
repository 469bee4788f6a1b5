"""Category service.

Categories are managed by admins. The slug is always derived from the name;
both must be unique.
"""

from typing import TYPE_CHECKING

import structlog

from src.auth.permissions import require_admin
from src.core.cache import ResourceKind
from src.core.errors import (
    ConflictError,
    NotFoundError,
    UniqueViolationError,
    ValidationError,
)
from src.utils.sanitize import generate_slug, sanitize_text

from .models import Category, create_category
from .schemas import CategoryResponse


if TYPE_CHECKING:
    from src.auth.schemas import Principal
    from src.core.cache import ResponseCache
    from src.datastore import Datastore


logger = structlog.get_logger(__name__)


DUPLICATE_MESSAGES = {
    "name": "A category with this name already exists",
    "slug": "A category with this slug already exists",
}


def _clean_name(name: str) -> str:
    cleaned = sanitize_text(name)
    if not cleaned:
        raise ValidationError(
            details=[{"field": "name", "message": "Category name is required"}]
        )
    return cleaned


class CategoryService:
    def __init__(self, datastore: "Datastore", cache: "ResponseCache"):
        self.datastore = datastore
        self.cache = cache

    async def list_categories(self) -> list[CategoryResponse]:
        categories = await self.datastore.list_categories()
        categories.sort(key=lambda c: c.name.lower())
        return [CategoryResponse.from_category(c) for c in categories]

    async def _get_category(self, category_id: str) -> Category:
        category = await self.datastore.get_category(category_id)
        if category is None:
            raise NotFoundError("Category not found")
        return category

    async def _save(self, category: Category, *, new: bool) -> None:
        """Insert or update, checking name then slug uniqueness."""
        existing = await self.datastore.get_category_by_name(category.name)
        if existing is not None and existing.id != category.id:
            raise ConflictError(DUPLICATE_MESSAGES["name"])
        existing = await self.datastore.get_category_by_slug(category.slug)
        if existing is not None and existing.id != category.id:
            raise ConflictError(DUPLICATE_MESSAGES["slug"])

        try:
            if new:
                await self.datastore.insert_category(category)
            else:
                await self.datastore.update_category(category)
        except UniqueViolationError as e:
            raise ConflictError(
                DUPLICATE_MESSAGES.get(e.field, DUPLICATE_MESSAGES["name"])
            ) from e
        await self.cache.invalidate_resources(ResourceKind.CATEGORY)

    async def create_category(
        self, principal: "Principal | None", name: str
    ) -> CategoryResponse:
        require_admin(principal).raise_if_denied()

        cleaned = _clean_name(name)
        category = create_category(cleaned)
        await self._save(category, new=True)

        logger.info("category_created", category_id=category.id, slug=category.slug)
        return CategoryResponse.from_category(category)

    async def update_category(
        self, principal: "Principal | None", category_id: str, name: str
    ) -> CategoryResponse:
        require_admin(principal).raise_if_denied()

        cleaned = _clean_name(name)
        category = await self._get_category(category_id)
        category.name = cleaned
        category.slug = generate_slug(cleaned, fallback_prefix="category")
        await self._save(category, new=False)

        logger.info("category_updated", category_id=category.id, slug=category.slug)
        return CategoryResponse.from_category(category)

    async def delete_category(
        self, principal: "Principal | None", category_id: str
    ) -> None:
        """Delete a category; its posts become uncategorized."""
        require_admin(principal).raise_if_denied()

        category = await self._get_category(category_id)
        await self.datastore.delete_category(category.id)
        await self.cache.invalidate_resources(ResourceKind.CATEGORY)

        logger.info("category_deleted", category_id=category.id)
