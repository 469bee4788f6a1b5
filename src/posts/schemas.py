"""Pydantic schemas for posts.

Request/Response models for:
- Post create/update
- Comment settings
- Post listings and detail
- Saved posts
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.core.pagination import PaginationMeta

from .models import Post


MAX_TITLE_LENGTH = 200
MAX_TAGS_PER_POST = 5


# ==============================================================================
# Request Schemas
# ==============================================================================


class PostCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    content: str = Field(..., min_length=1)
    published: bool = False
    allow_comments: bool = True
    category_id: str | None = None
    tags: list[str] = Field(default_factory=list, description="Tag ids")


class PostUpdateRequest(BaseModel):
    """Partial update; omitted fields keep their value."""

    title: str | None = Field(None, min_length=1, max_length=MAX_TITLE_LENGTH)
    content: str | None = Field(None, min_length=1)
    published: bool | None = None
    allow_comments: bool | None = None
    category_id: str | None = None
    tags: list[str] | None = None


class CommentSettingsRequest(BaseModel):
    allow_comments: bool


# ==============================================================================
# Response Schemas
# ==============================================================================


class PostResponse(BaseModel):
    id: str
    author_id: str
    author_username: str
    title: str
    slug: str
    content: str
    published: bool
    allow_comments: bool
    category_id: str | None
    tag_ids: list[str]
    pinned_comment_id: str | None
    like_count: int = 0
    comment_count: int = 0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_post(
        cls, post: Post, like_count: int = 0, comment_count: int = 0
    ) -> "PostResponse":
        return cls(
            id=post.id,
            author_id=post.author_id,
            author_username=post.author_username,
            title=post.title,
            slug=post.slug,
            content=post.content,
            published=post.published,
            allow_comments=post.allow_comments,
            category_id=post.category_id,
            tag_ids=list(post.tag_ids),
            pinned_comment_id=post.pinned_comment_id,
            like_count=like_count,
            comment_count=comment_count,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class PostListResponse(BaseModel):
    posts: list[PostResponse]
    pagination: PaginationMeta


class SavedPostResponse(PostResponse):
    saved_at: datetime


class SavedPostListResponse(BaseModel):
    posts: list[SavedPostResponse]
    pagination: PaginationMeta
