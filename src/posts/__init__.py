"""Blog post module.

Note: Router is not exported here to avoid circular imports.
Import directly from src.posts.router when needed.
"""

from .models import POSTS_TABLES_CQL, Post, PostLike, SavedPost, create_post
from .service import PostService


__all__ = [
    "POSTS_TABLES_CQL",
    "Post",
    "PostLike",
    "PostService",
    "SavedPost",
    "create_post",
]
