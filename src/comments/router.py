"""Comment thread API endpoints.

Provides routes for:
- Thread listing (cached, except for the post author)
- Comment and reply creation
- Owner edit and delete
- Likes
- Pinning and moderation by the post author
"""

from fastapi import APIRouter, Request

from src.auth.dependencies import CurrentPrincipal, OptionalPrincipal
from src.core.cache import ResourceKind
from src.core.dependencies import ResponseCacheDep, cached_response
from src.core.responses import created, ok

from .dependencies import CommentServiceDep
from .schemas import (
    CommentContentRequest,
    CommentResponse,
    CommentThreadListResponse,
    CommentThreadResponse,
    ModerationRequest,
)


router = APIRouter(prefix="/posts/{post_id}/comments", tags=["comments"])


@router.get("", summary="List post comments")
async def list_comments(
    post_id: str,
    request: Request,
    comment_service: CommentServiceDep,
    cache: ResponseCacheDep,
    principal: OptionalPrincipal,
):
    """Nested comment tree of a post, oldest first at every level.

    The post author also sees hidden comments; that view bypasses the cache.
    """

    async def build(viewer=None) -> dict:
        post, nodes = await comment_service.get_post_comments(post_id, viewer)
        return CommentThreadListResponse(
            comments=[CommentThreadResponse.from_node(node) for node in nodes],
            pinned_comment_id=post.pinned_comment_id,
        ).model_dump(mode="json")

    if await comment_service.is_post_author(principal, post_id):
        return ok(**await build(principal))
    return ok(**await cached_response(cache, ResourceKind.COMMENT, request, build))


@router.post("", summary="Create comment")
async def create_comment(
    post_id: str,
    data: CommentContentRequest,
    comment_service: CommentServiceDep,
    principal: CurrentPrincipal,
):
    comment = await comment_service.create_comment(principal, post_id, data.content)
    return created(
        message="Comment created successfully",
        comment=CommentResponse.from_comment(comment).model_dump(mode="json"),
    )


@router.post("/{comment_id}/reply", summary="Reply to comment")
async def reply_to_comment(
    post_id: str,
    comment_id: str,
    data: CommentContentRequest,
    comment_service: CommentServiceDep,
    principal: CurrentPrincipal,
):
    """Reply under `comment_id`; threads are limited to five levels."""
    reply = await comment_service.reply_to_comment(
        principal, post_id, comment_id, data.content
    )
    return created(
        message="Reply created successfully",
        comment=CommentResponse.from_comment(reply).model_dump(mode="json"),
    )


@router.put("/{comment_id}", summary="Edit comment")
async def update_comment(
    post_id: str,
    comment_id: str,
    data: CommentContentRequest,
    comment_service: CommentServiceDep,
    principal: CurrentPrincipal,
):
    comment, like_count = await comment_service.update_comment(
        principal, post_id, comment_id, data.content
    )
    return ok(
        message="Comment updated successfully",
        comment=CommentResponse.from_comment(comment, like_count).model_dump(
            mode="json"
        ),
    )


@router.delete("/{comment_id}", summary="Delete comment")
async def delete_comment(
    post_id: str,
    comment_id: str,
    comment_service: CommentServiceDep,
    principal: CurrentPrincipal,
):
    """Soft-delete the comment together with all of its replies."""
    await comment_service.delete_comment(principal, post_id, comment_id)
    return ok(message="Comment deleted successfully")


@router.post("/{comment_id}/like", summary="Like comment")
async def like_comment(
    post_id: str,
    comment_id: str,
    comment_service: CommentServiceDep,
    principal: CurrentPrincipal,
):
    like_count = await comment_service.like_comment(principal, post_id, comment_id)
    return created(message="Comment liked successfully", like_count=like_count)


@router.delete("/{comment_id}/like", summary="Unlike comment")
async def unlike_comment(
    post_id: str,
    comment_id: str,
    comment_service: CommentServiceDep,
    principal: CurrentPrincipal,
):
    like_count = await comment_service.unlike_comment(principal, post_id, comment_id)
    return ok(message="Comment unliked successfully", like_count=like_count)


@router.post("/{comment_id}/pin", summary="Pin comment")
async def pin_comment(
    post_id: str,
    comment_id: str,
    comment_service: CommentServiceDep,
    principal: CurrentPrincipal,
):
    """Pin a comment on the post. Only the post author may pin."""
    pinned_id = await comment_service.pin_comment(principal, post_id, comment_id)
    return ok(message="Comment pinned successfully", pinned_comment_id=pinned_id)


@router.delete("/{comment_id}/pin", summary="Unpin comment")
async def unpin_comment(
    post_id: str,
    comment_id: str,
    comment_service: CommentServiceDep,
    principal: CurrentPrincipal,
):
    await comment_service.unpin_comment(principal, post_id, comment_id)
    return ok(message="Comment unpinned successfully")


@router.patch("/{comment_id}/moderate", summary="Moderate comment")
async def moderate_comment(
    post_id: str,
    comment_id: str,
    data: ModerationRequest,
    comment_service: CommentServiceDep,
    principal: CurrentPrincipal,
):
    """Approve or hide a comment. Only the post author may moderate."""
    comment, like_count = await comment_service.moderate_comment(
        principal, post_id, comment_id, data.action
    )
    verb = "hidden" if data.action == "hide" else "approved"
    return ok(
        message=f"Comment {verb} successfully",
        comment=CommentResponse.from_comment(comment, like_count).model_dump(
            mode="json"
        ),
    )
