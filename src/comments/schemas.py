"""Pydantic schemas for threaded comments.

Request/Response models for:
- Comment create, reply and edit
- Thread listings with nested replies
- Moderation by the post author
- Recent comments across published posts
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.core.pagination import PaginationMeta

from .models import Comment, CommentNode, ModerationStatus


# ==============================================================================
# Request Schemas
# ==============================================================================


class CommentContentRequest(BaseModel):
    """Body of create, reply and edit requests.

    Length limits are checked after sanitization by the service.
    """

    content: str = Field(..., description="Comment text")


class ModerationRequest(BaseModel):
    action: str = Field(..., description='"approve" or "hide"')


# ==============================================================================
# Response Schemas
# ==============================================================================


class CommentResponse(BaseModel):
    id: str
    post_id: str
    user_id: str
    username: str
    parent_id: str | None
    content: str
    like_count: int = 0
    moderation_status: ModerationStatus = ModerationStatus.APPROVED
    is_top_commenter: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_comment(
        cls, comment: Comment, like_count: int = 0, is_top_commenter: bool = False
    ) -> "CommentResponse":
        return cls(
            id=comment.id,
            post_id=comment.post_id,
            user_id=comment.user_id,
            username=comment.username,
            parent_id=comment.parent_id,
            content=comment.content,
            like_count=like_count,
            moderation_status=comment.moderation_status,
            is_top_commenter=is_top_commenter,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )


class CommentThreadResponse(CommentResponse):
    replies: list["CommentThreadResponse"] = Field(default_factory=list)

    @classmethod
    def from_node(cls, node: CommentNode) -> "CommentThreadResponse":
        base = CommentResponse.from_comment(
            node.comment, node.like_count, node.is_top_commenter
        )
        return cls(
            **base.model_dump(),
            replies=[cls.from_node(reply) for reply in node.replies],
        )


class CommentThreadListResponse(BaseModel):
    comments: list[CommentThreadResponse]
    pinned_comment_id: str | None


class PostSummary(BaseModel):
    id: str
    title: str
    slug: str


class RecentCommentResponse(CommentResponse):
    post: PostSummary


class RecentCommentListResponse(BaseModel):
    comments: list[RecentCommentResponse]
    pagination: PaginationMeta
