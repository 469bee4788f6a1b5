"""Database models for posts.

Cassandra table definitions for:
- Posts: one row per post, tag ids held in a set column
- Post slugs: lookup table enforcing slug uniqueness (LWT)
- Post likes: one row per (post, user), partitioned by post
- Saved posts: one row per (user, post), partitioned by user
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from src.utils.dates import as_utc, utcnow


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

POSTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts (
    id TEXT PRIMARY KEY,
    author_id TEXT,
    author_username TEXT,
    title TEXT,
    slug TEXT,
    content TEXT,
    published BOOLEAN,
    allow_comments BOOLEAN,
    category_id TEXT,
    tag_ids SET<TEXT>,
    pinned_comment_id TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Slug -> post id, written with IF NOT EXISTS
POSTS_BY_SLUG_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts_by_slug (
    slug TEXT PRIMARY KEY,
    post_id TEXT
)
"""

POST_LIKES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.post_likes (
    post_id TEXT,
    user_id TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((post_id), user_id)
)
"""

SAVED_POSTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.saved_posts (
    user_id TEXT,
    post_id TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((user_id), post_id)
)
"""

POSTS_TABLES_CQL = [
    POSTS_TABLE_CQL,
    POSTS_BY_SLUG_TABLE_CQL,
    POST_LIKES_TABLE_CQL,
    SAVED_POSTS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Post:
    """Blog post entity."""

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
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Post":
        """Create Post from Cassandra row."""
        return cls(
            id=row.id,
            author_id=row.author_id,
            author_username=row.author_username or "",
            title=row.title,
            slug=row.slug,
            content=row.content or "",
            published=bool(row.published),
            allow_comments=row.allow_comments is not False,
            category_id=row.category_id,
            tag_ids=sorted(row.tag_ids or ()),
            pinned_comment_id=row.pinned_comment_id,
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at or row.created_at),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "author_id": self.author_id,
            "author_username": self.author_username,
            "title": self.title,
            "slug": self.slug,
            "content": self.content,
            "published": self.published,
            "allow_comments": self.allow_comments,
            "category_id": self.category_id,
            "tag_ids": list(self.tag_ids),
            "pinned_comment_id": self.pinned_comment_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class PostLike:
    post_id: str
    user_id: str
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_row(cls, row: Any) -> "PostLike":
        return cls(
            post_id=row.post_id,
            user_id=row.user_id,
            created_at=as_utc(row.created_at),
        )


@dataclass
class SavedPost:
    """A post bookmarked by a user."""

    post_id: str
    user_id: str
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_row(cls, row: Any) -> "SavedPost":
        return cls(
            post_id=row.post_id,
            user_id=row.user_id,
            created_at=as_utc(row.created_at),
        )


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_post(
    author_id: str,
    author_username: str,
    title: str,
    slug: str,
    content: str,
    published: bool = False,
    allow_comments: bool = True,
    category_id: str | None = None,
    tag_ids: list[str] | None = None,
) -> Post:
    """Create a new post with default values."""
    now = utcnow()
    return Post(
        id=str(uuid4()),
        author_id=author_id,
        author_username=author_username,
        title=title,
        slug=slug,
        content=content,
        published=published,
        allow_comments=allow_comments,
        category_id=category_id,
        tag_ids=list(tag_ids or []),
        pinned_comment_id=None,
        created_at=now,
        updated_at=now,
    )
