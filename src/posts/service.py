"""Post service.

Business logic for:
- Post CRUD with slug generation and tag/category checks
- Published listings, popular and trending ranking, detail
- The caller's own posts, drafts included
- Comment settings
- Post likes and saved posts
"""

import asyncio
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog

from src.auth.permissions import (
    require_auth,
    require_author,
    require_ownership_or_admin,
)
from src.core.cache import ResourceKind
from src.core.errors import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    UniqueViolationError,
)
from src.utils.dates import utcnow
from src.utils.sanitize import generate_slug, sanitize_text

from .models import Post, PostLike, SavedPost, create_post
from .schemas import (
    MAX_TAGS_PER_POST,
    PostCreateRequest,
    PostResponse,
    PostUpdateRequest,
    SavedPostResponse,
)


if TYPE_CHECKING:
    from src.auth.schemas import Principal
    from src.core.cache import ResponseCache
    from src.core.pagination import PageParams
    from src.datastore import Datastore


logger = structlog.get_logger(__name__)


DUPLICATE_TITLE = "A post with this title already exists"
# Only posts created within this window are considered for trending
TRENDING_WINDOW = timedelta(days=30)


class PostService:
    """Service for blog posts."""

    def __init__(self, datastore: "Datastore", cache: "ResponseCache"):
        self.datastore = datastore
        self.cache = cache

    # ==========================================================================
    # Helpers
    # ==========================================================================

    async def _get_post(self, post_id: str) -> Post:
        post = await self.datastore.get_post(post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    async def _get_owned_post(self, principal: "Principal | None", post_id: str) -> Post:
        """Fetch a post the caller may modify (owner or ADMIN)."""
        require_auth(principal).raise_if_denied()
        post = await self._get_post(post_id)
        require_ownership_or_admin(principal, post.author_id).raise_if_denied()
        return post

    async def _invalidate(self) -> None:
        await self.cache.invalidate_resources(ResourceKind.POST)

    async def _check_references(
        self, category_id: str | None, tag_ids: list[str]
    ) -> list[str]:
        """Validate category and tags; returns de-duplicated tag ids."""
        tag_ids = list(dict.fromkeys(tag_ids))
        if len(tag_ids) > MAX_TAGS_PER_POST:
            raise BadRequestError(f"A post can have at most {MAX_TAGS_PER_POST} tags")

        if category_id is not None and await self.datastore.get_category(category_id) is None:
            raise BadRequestError("Category not found")

        tags = await asyncio.gather(*(self.datastore.get_tag(tid) for tid in tag_ids))
        if any(tag is None for tag in tags):
            raise BadRequestError("One or more tags do not exist")
        return tag_ids

    async def to_responses(self, posts: list[Post]) -> list[PostResponse]:
        """Attach like and comment counts to posts."""
        ids = [post.id for post in posts]
        likes, comments = await asyncio.gather(
            self.datastore.count_post_likes(ids),
            self.datastore.count_comments(ids),
        )
        return [
            PostResponse.from_post(post, likes.get(post.id, 0), comments.get(post.id, 0))
            for post in posts
        ]

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def list_posts(
        self,
        params: "PageParams",
        category_id: str | None = None,
        tag_id: str | None = None,
    ) -> tuple[list[PostResponse], int]:
        """Published posts, newest first."""
        posts, total = await asyncio.gather(
            self.datastore.list_posts(
                category_id=category_id,
                tag_id=tag_id,
                offset=params.offset,
                limit=params.limit,
            ),
            self.datastore.count_posts(category_id=category_id, tag_id=tag_id),
        )
        return await self.to_responses(posts), total

    async def popular_posts(self, params: "PageParams") -> tuple[list[PostResponse], int]:
        """Published posts ranked by like count, newest first on ties."""
        posts = await self.datastore.list_posts()
        likes = await self.datastore.count_post_likes([post.id for post in posts])

        ranked = sorted(posts, key=lambda p: p.created_at, reverse=True)
        ranked.sort(key=lambda p: likes.get(p.id, 0), reverse=True)
        page = ranked[params.offset : params.offset + params.limit]
        return await self.to_responses(page), len(posts)

    async def trending_posts(self, params: "PageParams") -> tuple[list[PostResponse], int]:
        """Published posts from the last 30 days ranked by likes plus comments.

        Ties go to the newer post.
        """
        since = utcnow() - TRENDING_WINDOW
        posts = [p for p in await self.datastore.list_posts() if p.created_at >= since]
        ids = [post.id for post in posts]
        likes, comments = await asyncio.gather(
            self.datastore.count_post_likes(ids),
            self.datastore.count_comments(ids),
        )

        def score(post: Post) -> int:
            return likes.get(post.id, 0) + comments.get(post.id, 0)

        ranked = sorted(posts, key=lambda p: p.created_at, reverse=True)
        ranked.sort(key=score, reverse=True)
        page = ranked[params.offset : params.offset + params.limit]
        return await self.to_responses(page), len(posts)

    async def my_posts(
        self, principal: "Principal | None", params: "PageParams"
    ) -> tuple[list[PostResponse], int]:
        """The caller's posts, drafts included, newest first."""
        require_auth(principal).raise_if_denied()
        posts, total = await asyncio.gather(
            self.datastore.list_posts(
                published_only=False,
                author_id=principal.id,
                offset=params.offset,
                limit=params.limit,
            ),
            self.datastore.count_posts(published_only=False, author_id=principal.id),
        )
        return await self.to_responses(posts), total

    async def get_post(
        self, principal: "Principal | None", post_id: str
    ) -> PostResponse:
        """Single post; drafts are visible only to their author and admins.

        Raises:
            NotFoundError: Post missing, or a draft the caller cannot see
        """
        post = await self._get_post(post_id)
        if not post.published and (
            principal is None
            or not require_ownership_or_admin(principal, post.author_id).authorized
        ):
            raise NotFoundError("Post not found")
        return (await self.to_responses([post]))[0]

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def create_post(
        self, principal: "Principal | None", data: PostCreateRequest
    ) -> PostResponse:
        """Create a post owned by the caller.

        Raises:
            UnauthorizedError / ForbiddenError: Caller below AUTHOR
            BadRequestError: Unknown category or tags, too many tags
            ConflictError: Another post already uses the derived slug
        """
        require_author(principal).raise_if_denied()

        title = sanitize_text(data.title)
        if not title:
            raise BadRequestError("Title is required")
        tag_ids = await self._check_references(data.category_id, data.tags)

        post = create_post(
            author_id=principal.id,
            author_username=principal.username,
            title=title,
            slug=generate_slug(title),
            content=data.content.strip(),
            published=data.published,
            allow_comments=data.allow_comments,
            category_id=data.category_id,
            tag_ids=tag_ids,
        )
        try:
            await self.datastore.insert_post(post)
        except UniqueViolationError as e:
            raise ConflictError(DUPLICATE_TITLE) from e
        await self._invalidate()

        logger.info("post_created", post_id=post.id, slug=post.slug)
        return PostResponse.from_post(post)

    async def update_post(
        self,
        principal: "Principal | None",
        post_id: str,
        data: PostUpdateRequest,
    ) -> PostResponse:
        post = await self._get_owned_post(principal, post_id)
        fields = data.model_fields_set

        if data.title is not None:
            title = sanitize_text(data.title)
            if not title:
                raise BadRequestError("Title is required")
            if title != post.title:
                post.title = title
                post.slug = generate_slug(title)
        if data.content is not None:
            post.content = data.content.strip()
        if data.published is not None:
            post.published = data.published
        if data.allow_comments is not None:
            post.allow_comments = data.allow_comments
        if "category_id" in fields:
            post.category_id = data.category_id
        if data.tags is not None:
            post.tag_ids = data.tags

        post.tag_ids = await self._check_references(post.category_id, post.tag_ids)
        post.updated_at = utcnow()
        try:
            await self.datastore.update_post(post)
        except UniqueViolationError as e:
            raise ConflictError(DUPLICATE_TITLE) from e
        await self._invalidate()

        logger.info("post_updated", post_id=post.id, fields=sorted(fields))
        return (await self.to_responses([post]))[0]

    async def delete_post(self, principal: "Principal | None", post_id: str) -> None:
        """Delete a post with its comments, likes and reports."""
        post = await self._get_owned_post(principal, post_id)
        await self.datastore.delete_post(post.id)
        await self.cache.invalidate_resources(ResourceKind.POST, ResourceKind.REPORT)

        logger.info("post_deleted", post_id=post.id)

    async def update_comment_settings(
        self,
        principal: "Principal | None",
        post_id: str,
        allow_comments: bool,
    ) -> PostResponse:
        post = await self._get_owned_post(principal, post_id)
        post.allow_comments = allow_comments
        post.updated_at = utcnow()
        await self.datastore.update_post(post)
        await self._invalidate()

        logger.info(
            "post_comment_settings_updated",
            post_id=post.id,
            allow_comments=allow_comments,
        )
        return (await self.to_responses([post]))[0]

    # ==========================================================================
    # Likes
    # ==========================================================================

    async def _like_count(self, post_id: str) -> int:
        counts = await self.datastore.count_post_likes([post_id])
        return counts.get(post_id, 0)

    async def like_post(self, principal: "Principal | None", post_id: str) -> int:
        require_auth(principal).raise_if_denied()
        post = await self._get_post(post_id)
        try:
            await self.datastore.add_post_like(
                PostLike(post_id=post.id, user_id=principal.id)
            )
        except UniqueViolationError as e:
            raise BadRequestError("You have already liked this post") from e
        await self._invalidate()

        logger.info("post_liked", post_id=post.id)
        return await self._like_count(post.id)

    async def unlike_post(self, principal: "Principal | None", post_id: str) -> int:
        require_auth(principal).raise_if_denied()
        post = await self._get_post(post_id)
        if not await self.datastore.remove_post_like(post.id, principal.id):
            raise BadRequestError("You have not liked this post")
        await self._invalidate()

        logger.info("post_unliked", post_id=post.id)
        return await self._like_count(post.id)

    # ==========================================================================
    # Saved posts
    # ==========================================================================

    def _visible_to(self, principal: "Principal", post: Post) -> bool:
        return post.published or require_ownership_or_admin(
            principal, post.author_id
        ).authorized

    async def save_post(self, principal: "Principal | None", post_id: str) -> None:
        """Bookmark a post for the caller.

        Raises:
            NotFoundError: Post missing, or a draft the caller cannot see
            BadRequestError: Already saved
        """
        require_auth(principal).raise_if_denied()
        post = await self._get_post(post_id)
        if not self._visible_to(principal, post):
            raise NotFoundError("Post not found")
        try:
            await self.datastore.add_saved_post(
                SavedPost(post_id=post.id, user_id=principal.id)
            )
        except UniqueViolationError as e:
            raise BadRequestError("You have already saved this post") from e

        logger.info("post_saved", post_id=post.id)

    async def unsave_post(self, principal: "Principal | None", post_id: str) -> None:
        require_auth(principal).raise_if_denied()
        post = await self._get_post(post_id)
        if not await self.datastore.remove_saved_post(post.id, principal.id):
            raise BadRequestError("You have not saved this post")

        logger.info("post_unsaved", post_id=post.id)

    async def saved_posts(
        self, principal: "Principal | None", params: "PageParams"
    ) -> tuple[list[SavedPostResponse], int]:
        """Posts the caller saved, most recently saved first.

        Posts that have since become drafts the caller cannot see are skipped.
        """
        require_auth(principal).raise_if_denied()

        saved = await self.datastore.list_saved_posts(principal.id)
        posts = await asyncio.gather(*(self.datastore.get_post(s.post_id) for s in saved))
        visible = [
            (entry, post)
            for entry, post in zip(saved, posts, strict=True)
            if post is not None and self._visible_to(principal, post)
        ]

        page = visible[params.offset : params.offset + params.limit]
        responses = await self.to_responses([post for _, post in page])
        return [
            SavedPostResponse(**response.model_dump(), saved_at=entry.created_at)
            for (entry, _), response in zip(page, responses, strict=True)
        ], len(visible)
