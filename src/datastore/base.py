"""Datastore contract shared by the in-memory and Cassandra backends.

Records are addressed by id (arena style): a comment thread is a set of
comments pointing at their parent by id, and walking up a thread is a series
of `get_comment` lookups.

Constraint violations surface as `UniqueViolationError(field)` and
`ForeignKeyViolationError`, translated to HTTP errors at the boundary.
"""

from datetime import datetime
from typing import Protocol, runtime_checkable

from src.categories.models import Category
from src.comments.models import Comment, CommentLike
from src.posts.models import Post, PostLike, SavedPost
from src.reports.models import CommentReport, PostReport
from src.tags.models import Tag


@runtime_checkable
class Datastore(Protocol):
    async def ping(self) -> bool: ...

    async def close(self) -> None: ...

    # Posts

    async def get_post(self, post_id: str) -> Post | None: ...

    async def insert_post(self, post: Post) -> None: ...

    async def update_post(self, post: Post) -> None:
        """Replace a post, tag list included, in one call."""

    async def set_pinned_comment(self, post_id: str, comment_id: str | None) -> None: ...

    async def delete_post(self, post_id: str) -> None:
        """Delete a post with its comments, likes, saves and reports."""

    async def list_posts(
        self,
        *,
        published_only: bool = True,
        category_id: str | None = None,
        tag_id: str | None = None,
        author_id: str | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Post]:
        """Posts matching the filters, newest first."""

    async def count_posts(
        self,
        *,
        published_only: bool = True,
        category_id: str | None = None,
        tag_id: str | None = None,
        author_id: str | None = None,
    ) -> int: ...

    async def add_post_like(self, like: PostLike) -> None: ...

    async def remove_post_like(self, post_id: str, user_id: str) -> bool: ...

    async def count_post_likes(self, post_ids: list[str]) -> dict[str, int]: ...

    async def add_saved_post(self, saved: SavedPost) -> None: ...

    async def remove_saved_post(self, post_id: str, user_id: str) -> bool: ...

    async def list_saved_posts(self, user_id: str) -> list[SavedPost]:
        """Posts saved by `user_id`, most recently saved first."""

    # Comments

    async def get_comment(self, comment_id: str) -> Comment | None: ...

    async def insert_comment(self, comment: Comment) -> None: ...

    async def update_comment(self, comment: Comment) -> None: ...

    async def soft_delete_comments(
        self, comment_ids: list[str], deleted_at: datetime
    ) -> None: ...

    async def list_post_comments(self, post_id: str) -> list[Comment]:
        """Non-deleted comments of a post, oldest first, hidden ones included."""

    async def count_comments(self, post_ids: list[str]) -> dict[str, int]: ...

    async def list_recent_comments(self, offset: int, limit: int) -> list[Comment]:
        """Top-level, live, non-hidden comments on published posts, newest first."""

    async def count_recent_comments(self) -> int: ...

    async def add_comment_like(self, like: CommentLike) -> None: ...

    async def remove_comment_like(self, comment_id: str, user_id: str) -> bool: ...

    async def count_comment_likes(self, comment_ids: list[str]) -> dict[str, int]: ...

    async def count_comments_by_commenter(
        self, post_author_id: str
    ) -> dict[str, int]:
        """Non-deleted comments per commenter on posts by `post_author_id`."""

    # Tags

    async def list_tags(self) -> list[Tag]: ...

    async def get_tag(self, tag_id: str) -> Tag | None: ...

    async def get_tag_by_name(self, name: str) -> Tag | None: ...

    async def insert_tag(self, tag: Tag) -> None: ...

    async def update_tag(self, tag: Tag) -> None: ...

    async def delete_tag(self, tag_id: str) -> None: ...

    async def count_posts_per_tag(self) -> dict[str, int]: ...

    # Categories

    async def list_categories(self) -> list[Category]: ...

    async def get_category(self, category_id: str) -> Category | None: ...

    async def get_category_by_name(self, name: str) -> Category | None: ...

    async def get_category_by_slug(self, slug: str) -> Category | None: ...

    async def insert_category(self, category: Category) -> None: ...

    async def update_category(self, category: Category) -> None: ...

    async def delete_category(self, category_id: str) -> None: ...

    # Reports

    async def get_report(self, report_id: str) -> PostReport | None: ...

    async def insert_report(self, report: PostReport) -> None: ...

    async def update_report(self, report: PostReport) -> None: ...

    async def list_reports(self, offset: int, limit: int) -> list[PostReport]:
        """Reports, newest first."""

    async def count_reports(self) -> int: ...

    async def get_comment_report(self, report_id: str) -> CommentReport | None: ...

    async def insert_comment_report(self, report: CommentReport) -> None: ...

    async def update_comment_report(self, report: CommentReport) -> None: ...

    async def list_comment_reports(self, offset: int, limit: int) -> list[CommentReport]:
        """Comment reports, newest first."""

    async def count_comment_reports(self) -> int: ...

    async def list_post_comment_reports(self, post_id: str) -> list[CommentReport]:
        """Reports on the comments of one post, oldest first."""
