"""Post API endpoints.

Provides routes for:
- Published listings, popular and trending posts, recent comments (cached)
- The caller's own and saved posts
- Post detail (cached for published posts)
- Post create/update/delete
- Comment settings, the moderation queue, likes and saves
"""

from typing import Annotated

from fastapi import APIRouter, Query, Request

from src.auth.dependencies import CurrentPrincipal, OptionalPrincipal
from src.comments.dependencies import CommentServiceDep
from src.comments.models import ModerationStatus
from src.comments.schemas import (
    CommentResponse,
    PostSummary,
    RecentCommentListResponse,
    RecentCommentResponse,
)
from src.config.settings import get_settings
from src.core.cache import ResourceKind, build_cache_key
from src.core.dependencies import ResponseCacheDep, cached_response
from src.core.pagination import Pagination, PaginationMeta
from src.core.responses import created, ok
from src.reports.schemas import (
    CommentReportResponse,
    ModerationQueueComment,
    ModerationQueueResponse,
)

from .dependencies import PostServiceDep
from .schemas import (
    CommentSettingsRequest,
    PostCreateRequest,
    PostListResponse,
    PostUpdateRequest,
    SavedPostListResponse,
)


router = APIRouter(prefix="/posts", tags=["posts"])


# ==============================================================================
# Listings
# ==============================================================================


@router.get("", summary="List published posts")
async def list_posts(
    request: Request,
    params: Pagination,
    post_service: PostServiceDep,
    cache: ResponseCacheDep,
    category_id: Annotated[str | None, Query()] = None,
    tag_id: Annotated[str | None, Query()] = None,
):
    async def build() -> dict:
        posts, total = await post_service.list_posts(params, category_id, tag_id)
        return PostListResponse(
            posts=posts, pagination=PaginationMeta.build(params, total)
        ).model_dump(mode="json")

    body = await cached_response(
        cache, ResourceKind.POST, request, build, get_settings().cache_ttl_posts_list
    )
    return ok(**body)


@router.get("/popular", summary="Most liked posts")
async def popular_posts(
    request: Request,
    params: Pagination,
    post_service: PostServiceDep,
    cache: ResponseCacheDep,
):
    async def build() -> dict:
        posts, total = await post_service.popular_posts(params)
        return PostListResponse(
            posts=posts, pagination=PaginationMeta.build(params, total)
        ).model_dump(mode="json")

    body = await cached_response(
        cache, ResourceKind.POST, request, build, get_settings().cache_ttl_posts_list
    )
    return ok(**body)


@router.get("/trending", summary="Trending posts")
async def trending_posts(
    request: Request,
    params: Pagination,
    post_service: PostServiceDep,
    cache: ResponseCacheDep,
):
    """Posts of the last 30 days ranked by likes plus comments."""

    async def build() -> dict:
        posts, total = await post_service.trending_posts(params)
        return PostListResponse(
            posts=posts, pagination=PaginationMeta.build(params, total)
        ).model_dump(mode="json")

    body = await cached_response(
        cache, ResourceKind.POST, request, build, get_settings().cache_ttl_posts_list
    )
    return ok(**body)


@router.get("/my-posts", summary="The caller's posts")
async def my_posts(
    params: Pagination,
    post_service: PostServiceDep,
    principal: CurrentPrincipal,
):
    """Drafts included, newest first. Not cached."""
    posts, total = await post_service.my_posts(principal, params)
    return ok(
        **PostListResponse(
            posts=posts, pagination=PaginationMeta.build(params, total)
        ).model_dump(mode="json")
    )


@router.get("/saved", summary="The caller's saved posts")
async def saved_posts(
    params: Pagination,
    post_service: PostServiceDep,
    principal: CurrentPrincipal,
):
    posts, total = await post_service.saved_posts(principal, params)
    return ok(
        **SavedPostListResponse(
            posts=posts, pagination=PaginationMeta.build(params, total)
        ).model_dump(mode="json")
    )


@router.get("/recent-comments", summary="Recent comments across posts")
async def recent_comments(
    request: Request,
    params: Pagination,
    comment_service: CommentServiceDep,
    cache: ResponseCacheDep,
):
    """Newest top-level comments on published posts."""

    async def build() -> dict:
        items, total = await comment_service.get_recent_comments(params)
        comments = [
            RecentCommentResponse(
                **CommentResponse.from_comment(comment, like_count).model_dump(),
                post=PostSummary(id=post.id, title=post.title, slug=post.slug),
            )
            for comment, post, like_count in items
        ]
        return RecentCommentListResponse(
            comments=comments, pagination=PaginationMeta.build(params, total)
        ).model_dump(mode="json")

    body = await cached_response(
        cache,
        ResourceKind.COMMENT,
        request,
        build,
        get_settings().cache_ttl_comments_recent,
    )
    return ok(**body)


# ==============================================================================
# Single post
# ==============================================================================


@router.get("/{post_id}", summary="Get post")
async def get_post(
    post_id: str,
    request: Request,
    post_service: PostServiceDep,
    cache: ResponseCacheDep,
    principal: OptionalPrincipal,
):
    """Post detail with like and comment counts.

    Drafts are served to their author and admins only and are never cached.
    """
    key = build_cache_key(
        ResourceKind.POST, request.url.path, request.query_params.multi_items()
    )
    cached = await cache.get(key)
    if cached is not None:
        return ok(**cached)

    generation = await cache.generation(key)
    post = await post_service.get_post(principal, post_id)
    body = {"post": post.model_dump(mode="json")}
    if post.published:
        await cache.set_if_current(
            key, body, generation, get_settings().cache_ttl_posts_single
        )
    return ok(**body)


@router.post("", summary="Create post")
async def create_post(
    data: PostCreateRequest,
    post_service: PostServiceDep,
    principal: CurrentPrincipal,
):
    post = await post_service.create_post(principal, data)
    return created(message="Post created successfully", post=post.model_dump(mode="json"))


@router.put("/{post_id}", summary="Update post")
async def update_post(
    post_id: str,
    data: PostUpdateRequest,
    post_service: PostServiceDep,
    principal: CurrentPrincipal,
):
    post = await post_service.update_post(principal, post_id, data)
    return ok(message="Post updated successfully", post=post.model_dump(mode="json"))


@router.delete("/{post_id}", summary="Delete post")
async def delete_post(
    post_id: str,
    post_service: PostServiceDep,
    principal: CurrentPrincipal,
):
    await post_service.delete_post(principal, post_id)
    return ok(message="Post deleted successfully")


@router.patch("/{post_id}/comments/settings", summary="Update comment settings")
async def update_comment_settings(
    post_id: str,
    data: CommentSettingsRequest,
    post_service: PostServiceDep,
    principal: CurrentPrincipal,
):
    post = await post_service.update_comment_settings(
        principal, post_id, data.allow_comments
    )
    return ok(
        message="Comment settings updated successfully",
        post=post.model_dump(mode="json"),
    )


# ==============================================================================
# Likes
# ==============================================================================


@router.post("/{post_id}/like", summary="Like post")
async def like_post(
    post_id: str,
    post_service: PostServiceDep,
    principal: CurrentPrincipal,
):
    like_count = await post_service.like_post(principal, post_id)
    return created(message="Post liked successfully", like_count=like_count)


@router.delete("/{post_id}/like", summary="Unlike post")
async def unlike_post(
    post_id: str,
    post_service: PostServiceDep,
    principal: CurrentPrincipal,
):
    like_count = await post_service.unlike_post(principal, post_id)
    return ok(message="Post unliked successfully", like_count=like_count)


# ==============================================================================
# Saves
# ==============================================================================


@router.post("/{post_id}/save", summary="Save post")
async def save_post(
    post_id: str,
    post_service: PostServiceDep,
    principal: CurrentPrincipal,
):
    await post_service.save_post(principal, post_id)
    return created(message="Post saved successfully")


@router.delete("/{post_id}/save", summary="Unsave post")
async def unsave_post(
    post_id: str,
    post_service: PostServiceDep,
    principal: CurrentPrincipal,
):
    await post_service.unsave_post(principal, post_id)
    return ok(message="Post unsaved successfully")


# ==============================================================================
# Moderation
# ==============================================================================


@router.get("/{post_id}/moderation-queue", summary="Comment moderation queue")
async def moderation_queue(
    post_id: str,
    comment_service: CommentServiceDep,
    principal: CurrentPrincipal,
    status: Annotated[ModerationStatus | None, Query()] = None,
):
    """Comments of the post with their reports, newest first. Post author only."""
    post, items = await comment_service.get_moderation_queue(principal, post_id, status)
    queue = ModerationQueueResponse(
        post=PostSummary(id=post.id, title=post.title, slug=post.slug),
        comments=[
            ModerationQueueComment(
                **CommentResponse.from_comment(comment, like_count).model_dump(),
                reports=[CommentReportResponse.from_report(r) for r in reports],
            )
            for comment, like_count, reports in items
        ],
    )
    return ok(**queue.model_dump(mode="json"))
