"""Database models for threaded comments.

Cassandra table definitions for:
- Comments: partitioned by post, clustered by creation time so a whole thread
  is read in order with one query
- Comments by id: O(1) lookup of a comment's partition key
- Comment likes: one row per (comment, user)

Architecture: adjacency list
- parent_id references the parent comment (NULL for top-level comments)
- A comment sits at most 5 hops below its root
- Soft delete: deleted_at is set on the comment and all of its replies
- Moderation: the post author may hide a comment; reports move an approved
  comment to PENDING until the author decides
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from src.utils.dates import as_utc, utcnow


# Hops from a reply to the top-level comment of its thread
MAX_THREAD_DEPTH = 5
MAX_COMMENT_LENGTH = 5000
# Comments on one author's posts needed for the top commenter badge
TOP_COMMENTER_THRESHOLD = 5


class ModerationStatus(str, Enum):
    """Visibility decided by the post author."""

    APPROVED = "APPROVED"
    PENDING = "PENDING"
    HIDDEN = "HIDDEN"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COMMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments (
    post_id TEXT,
    created_at TIMESTAMP,
    id TEXT,
    user_id TEXT,
    username TEXT,
    parent_id TEXT,
    content TEXT,
    updated_at TIMESTAMP,
    deleted_at TIMESTAMP,
    moderation_status TEXT,
    PRIMARY KEY ((post_id), created_at, id)
) WITH CLUSTERING ORDER BY (created_at ASC, id ASC)
"""

COMMENTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_id (
    id TEXT PRIMARY KEY,
    post_id TEXT,
    created_at TIMESTAMP
)
"""

COMMENT_LIKES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comment_likes (
    comment_id TEXT,
    user_id TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((comment_id), user_id)
)
"""

COMMENTS_TABLES_CQL = [
    COMMENTS_TABLE_CQL,
    COMMENTS_BY_ID_TABLE_CQL,
    COMMENT_LIKES_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Comment:
    """Comment entity."""

    id: str
    post_id: str
    user_id: str
    username: str
    parent_id: str | None
    content: str
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None
    moderation_status: ModerationStatus = ModerationStatus.APPROVED

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from Cassandra row."""
        return cls(
            id=row.id,
            post_id=row.post_id,
            user_id=row.user_id,
            username=row.username or "",
            parent_id=row.parent_id,
            content=row.content or "",
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at or row.created_at),
            deleted_at=as_utc(row.deleted_at),
            moderation_status=ModerationStatus(
                row.moderation_status or ModerationStatus.APPROVED
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "post_id": self.post_id,
            "user_id": self.user_id,
            "username": self.username,
            "parent_id": self.parent_id,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "moderation_status": self.moderation_status.value,
        }


@dataclass
class CommentLike:
    comment_id: str
    user_id: str
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_row(cls, row: Any) -> "CommentLike":
        return cls(
            comment_id=row.comment_id,
            user_id=row.user_id,
            created_at=as_utc(row.created_at),
        )


@dataclass
class CommentNode:
    """A comment with its like count and nested replies, for thread listings."""

    comment: Comment
    like_count: int = 0
    is_top_commenter: bool = False
    replies: list["CommentNode"] = field(default_factory=list)


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_comment(
    post_id: str,
    user_id: str,
    username: str,
    content: str,
    parent_id: str | None = None,
) -> Comment:
    """Create a new comment with default values."""
    now = utcnow()
    return Comment(
        id=str(uuid4()),
        post_id=post_id,
        user_id=user_id,
        username=username,
        parent_id=parent_id,
        content=content,
        created_at=now,
        updated_at=now,
    )
