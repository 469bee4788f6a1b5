"""Tag service: listing with usage counts and admin management."""

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
from src.utils.sanitize import sanitize_text

from .models import Tag, create_tag
from .schemas import TagResponse


if TYPE_CHECKING:
    from src.auth.schemas import Principal
    from src.core.cache import ResponseCache
    from src.datastore import Datastore


logger = structlog.get_logger(__name__)


def _clean_name(name: str) -> str:
    """Sanitize a tag name.

    Raises:
        ValidationError: If nothing is left after sanitization
    """
    cleaned = sanitize_text(name)
    if not cleaned:
        raise ValidationError(
            details=[{"field": "name", "message": "Tag name is required"}]
        )
    return cleaned


class TagService:
    def __init__(self, datastore: "Datastore", cache: "ResponseCache"):
        self.datastore = datastore
        self.cache = cache

    async def list_tags(
        self, search: str | None = None, popular: bool = False
    ) -> list[TagResponse]:
        """Tags with their post counts.

        Args:
            search: Case-insensitive substring filter on the name
            popular: Order by post count (desc) instead of by name
        """
        tags = await self.datastore.list_tags()
        counts = await self.datastore.count_posts_per_tag()

        needle = (search or "").strip().lower()
        if needle:
            tags = [tag for tag in tags if needle in tag.name.lower()]

        tags.sort(key=lambda t: t.name.lower())
        if popular:
            tags.sort(key=lambda t: counts.get(t.id, 0), reverse=True)
        return [TagResponse.from_tag(tag, counts.get(tag.id, 0)) for tag in tags]

    async def _get_tag(self, tag_id: str) -> Tag:
        tag = await self.datastore.get_tag(tag_id)
        if tag is None:
            raise NotFoundError("Tag not found")
        return tag

    async def create_tag(self, principal: "Principal | None", name: str) -> TagResponse:
        require_admin(principal).raise_if_denied()

        tag = create_tag(_clean_name(name))
        try:
            await self.datastore.insert_tag(tag)
        except UniqueViolationError as e:
            raise ConflictError("Tag already exists") from e
        await self.cache.invalidate_resources(ResourceKind.TAG)

        logger.info("tag_created", tag_id=tag.id, name=tag.name)
        return TagResponse.from_tag(tag)

    async def update_tag(
        self, principal: "Principal | None", tag_id: str, name: str
    ) -> TagResponse:
        require_admin(principal).raise_if_denied()

        tag = await self._get_tag(tag_id)
        tag.name = _clean_name(name)
        try:
            await self.datastore.update_tag(tag)
        except UniqueViolationError as e:
            raise ConflictError("Tag already exists") from e
        await self.cache.invalidate_resources(ResourceKind.TAG)

        counts = await self.datastore.count_posts_per_tag()
        logger.info("tag_updated", tag_id=tag.id, name=tag.name)
        return TagResponse.from_tag(tag, counts.get(tag.id, 0))

    async def delete_tag(self, principal: "Principal | None", tag_id: str) -> None:
        """Delete a tag and detach it from every post."""
        require_admin(principal).raise_if_denied()

        tag = await self._get_tag(tag_id)
        await self.datastore.delete_tag(tag.id)
        await self.cache.invalidate_resources(ResourceKind.TAG)

        logger.info("tag_deleted", tag_id=tag.id)
