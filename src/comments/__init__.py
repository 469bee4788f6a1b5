"""Threaded comment module.

Provides:
- Replies nested up to five levels
- Owner-only edit and cascading soft delete
- Likes and a single pinned comment per post

Note: Router is not exported here to avoid circular imports.
Import directly from src.comments.router when needed.
"""

from .models import (
    COMMENTS_TABLES_CQL,
    MAX_COMMENT_LENGTH,
    MAX_THREAD_DEPTH,
    Comment,
    CommentLike,
    CommentNode,
)
from .service import CommentService, clean_comment_content


__all__ = [
    "COMMENTS_TABLES_CQL",
    "MAX_COMMENT_LENGTH",
    "MAX_THREAD_DEPTH",
    "Comment",
    "CommentLike",
    "CommentNode",
    "CommentService",
    "clean_comment_content",
]
