"""In-memory datastore.

Arena maps (`id -> record`) plus the uniqueness indexes the Cassandra
backend enforces with lightweight transactions. Records are copied on the
way in and out so callers never share state with the store.

Used by the test suite and as the non-production fallback when Cassandra is
unreachable.
"""

from copy import deepcopy
from datetime import datetime
from typing import TypeVar

import structlog

from src.categories.models import Category
from src.comments.models import Comment, CommentLike, ModerationStatus
from src.core.errors import (
    ForeignKeyViolationError,
    RecordNotFoundError,
    UniqueViolationError,
)
from src.posts.models import Post, PostLike, SavedPost
from src.reports.models import CommentReport, PostReport
from src.tags.models import Tag, tag_name_key


logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _copy(record: T | None) -> T | None:
    return deepcopy(record) if record is not None else None


def _newest_first(records: list[T]) -> list[T]:
    # Reversed first so that equal timestamps keep the latest insert on top
    return sorted(reversed(records), key=lambda r: r.created_at, reverse=True)


class MemoryDatastore:
    """Datastore kept in process memory."""

    def __init__(self) -> None:
        self.posts: dict[str, Post] = {}
        self.comments: dict[str, Comment] = {}
        self.tags: dict[str, Tag] = {}
        self.categories: dict[str, Category] = {}
        self.reports: dict[str, PostReport] = {}
        self.comment_reports: dict[str, CommentReport] = {}
        # (post_id, user_id) / (comment_id, user_id) / (user_id, post_id)
        self.post_likes: dict[tuple[str, str], PostLike] = {}
        self.comment_likes: dict[tuple[str, str], CommentLike] = {}
        self.saved_posts: dict[tuple[str, str], SavedPost] = {}
        logger.info("memory_datastore_initialized")

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None

    # ==========================================================================
    # Posts
    # ==========================================================================

    def _check_post_references(self, post: Post) -> None:
        if post.category_id is not None and post.category_id not in self.categories:
            raise ForeignKeyViolationError("category_id")
        if any(tag_id not in self.tags for tag_id in post.tag_ids):
            raise ForeignKeyViolationError("tag_ids")

    def _check_slug(self, post: Post) -> None:
        for other in self.posts.values():
            if other.slug == post.slug and other.id != post.id:
                raise UniqueViolationError("slug")

    async def get_post(self, post_id: str) -> Post | None:
        return _copy(self.posts.get(post_id))

    async def insert_post(self, post: Post) -> None:
        self._check_slug(post)
        self._check_post_references(post)
        self.posts[post.id] = deepcopy(post)

    async def update_post(self, post: Post) -> None:
        if post.id not in self.posts:
            raise RecordNotFoundError(post.id)
        self._check_slug(post)
        self._check_post_references(post)
        self.posts[post.id] = deepcopy(post)

    async def set_pinned_comment(self, post_id: str, comment_id: str | None) -> None:
        post = self.posts.get(post_id)
        if post is None:
            raise RecordNotFoundError(post_id)
        post.pinned_comment_id = comment_id

    async def delete_post(self, post_id: str) -> None:
        if self.posts.pop(post_id, None) is None:
            raise RecordNotFoundError(post_id)

        doomed = {cid for cid, c in self.comments.items() if c.post_id == post_id}
        for comment_id in doomed:
            del self.comments[comment_id]
        self.comment_likes = {
            key: like for key, like in self.comment_likes.items() if key[0] not in doomed
        }
        self.post_likes = {
            key: like for key, like in self.post_likes.items() if key[0] != post_id
        }
        self.reports = {
            rid: report for rid, report in self.reports.items() if report.post_id != post_id
        }
        self.comment_reports = {
            rid: report
            for rid, report in self.comment_reports.items()
            if report.post_id != post_id
        }
        self.saved_posts = {
            key: saved for key, saved in self.saved_posts.items() if key[1] != post_id
        }

    def _filter_posts(
        self,
        published_only: bool,
        category_id: str | None,
        tag_id: str | None,
        author_id: str | None,
    ) -> list[Post]:
        posts = [
            post
            for post in self.posts.values()
            if (not published_only or post.published)
            and (category_id is None or post.category_id == category_id)
            and (tag_id is None or tag_id in post.tag_ids)
            and (author_id is None or post.author_id == author_id)
        ]
        return _newest_first(posts)

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
        posts = self._filter_posts(published_only, category_id, tag_id, author_id)
        end = None if limit is None else offset + limit
        return [deepcopy(post) for post in posts[offset:end]]

    async def count_posts(
        self,
        *,
        published_only: bool = True,
        category_id: str | None = None,
        tag_id: str | None = None,
        author_id: str | None = None,
    ) -> int:
        return len(self._filter_posts(published_only, category_id, tag_id, author_id))

    async def add_post_like(self, like: PostLike) -> None:
        if like.post_id not in self.posts:
            raise ForeignKeyViolationError("post_id")
        key = (like.post_id, like.user_id)
        if key in self.post_likes:
            raise UniqueViolationError("like")
        self.post_likes[key] = deepcopy(like)

    async def remove_post_like(self, post_id: str, user_id: str) -> bool:
        return self.post_likes.pop((post_id, user_id), None) is not None

    async def count_post_likes(self, post_ids: list[str]) -> dict[str, int]:
        counts = dict.fromkeys(post_ids, 0)
        for post_id, _ in self.post_likes:
            if post_id in counts:
                counts[post_id] += 1
        return counts

    async def add_saved_post(self, saved: SavedPost) -> None:
        if saved.post_id not in self.posts:
            raise ForeignKeyViolationError("post_id")
        key = (saved.user_id, saved.post_id)
        if key in self.saved_posts:
            raise UniqueViolationError("saved")
        self.saved_posts[key] = deepcopy(saved)

    async def remove_saved_post(self, post_id: str, user_id: str) -> bool:
        return self.saved_posts.pop((user_id, post_id), None) is not None

    async def list_saved_posts(self, user_id: str) -> list[SavedPost]:
        saved = [s for (uid, _), s in self.saved_posts.items() if uid == user_id]
        return [deepcopy(s) for s in _newest_first(saved)]

    # ==========================================================================
    # Comments
    # ==========================================================================

    async def get_comment(self, comment_id: str) -> Comment | None:
        return _copy(self.comments.get(comment_id))

    async def insert_comment(self, comment: Comment) -> None:
        if comment.post_id not in self.posts:
            raise ForeignKeyViolationError("post_id")
        if comment.parent_id is not None and comment.parent_id not in self.comments:
            raise ForeignKeyViolationError("parent_id")
        self.comments[comment.id] = deepcopy(comment)

    async def update_comment(self, comment: Comment) -> None:
        if comment.id not in self.comments:
            raise RecordNotFoundError(comment.id)
        self.comments[comment.id] = deepcopy(comment)

    async def soft_delete_comments(
        self, comment_ids: list[str], deleted_at: datetime
    ) -> None:
        for comment_id in comment_ids:
            comment = self.comments.get(comment_id)
            if comment is not None:
                comment.deleted_at = deleted_at

    async def list_post_comments(self, post_id: str) -> list[Comment]:
        comments = [
            c for c in self.comments.values() if c.post_id == post_id and not c.is_deleted
        ]
        return [deepcopy(c) for c in sorted(comments, key=lambda c: c.created_at)]

    async def count_comments(self, post_ids: list[str]) -> dict[str, int]:
        counts = dict.fromkeys(post_ids, 0)
        for comment in self.comments.values():
            if comment.post_id in counts and not comment.is_deleted:
                counts[comment.post_id] += 1
        return counts

    def _recent_comments(self) -> list[Comment]:
        comments = [
            c
            for c in self.comments.values()
            if c.parent_id is None
            and not c.is_deleted
            and c.moderation_status is not ModerationStatus.HIDDEN
            and c.post_id in self.posts
            and self.posts[c.post_id].published
        ]
        return _newest_first(comments)

    async def list_recent_comments(self, offset: int, limit: int) -> list[Comment]:
        return [deepcopy(c) for c in self._recent_comments()[offset : offset + limit]]

    async def count_recent_comments(self) -> int:
        return len(self._recent_comments())

    async def add_comment_like(self, like: CommentLike) -> None:
        if like.comment_id not in self.comments:
            raise ForeignKeyViolationError("comment_id")
        key = (like.comment_id, like.user_id)
        if key in self.comment_likes:
            raise UniqueViolationError("like")
        self.comment_likes[key] = deepcopy(like)

    async def remove_comment_like(self, comment_id: str, user_id: str) -> bool:
        return self.comment_likes.pop((comment_id, user_id), None) is not None

    async def count_comment_likes(self, comment_ids: list[str]) -> dict[str, int]:
        counts = dict.fromkeys(comment_ids, 0)
        for comment_id, _ in self.comment_likes:
            if comment_id in counts:
                counts[comment_id] += 1
        return counts

    async def count_comments_by_commenter(self, post_author_id: str) -> dict[str, int]:
        counts: dict[str, int] = {}
        for comment in self.comments.values():
            post = self.posts.get(comment.post_id)
            if post is None or post.author_id != post_author_id or comment.is_deleted:
                continue
            counts[comment.user_id] = counts.get(comment.user_id, 0) + 1
        return counts

    # ==========================================================================
    # Tags
    # ==========================================================================

    def _check_tag_name(self, tag: Tag) -> None:
        for other in self.tags.values():
            if other.name_key == tag.name_key and other.id != tag.id:
                raise UniqueViolationError("name")

    async def list_tags(self) -> list[Tag]:
        return [deepcopy(tag) for tag in self.tags.values()]

    async def get_tag(self, tag_id: str) -> Tag | None:
        return _copy(self.tags.get(tag_id))

    async def get_tag_by_name(self, name: str) -> Tag | None:
        key = tag_name_key(name)
        for tag in self.tags.values():
            if tag.name_key == key:
                return deepcopy(tag)
        return None

    async def insert_tag(self, tag: Tag) -> None:
        self._check_tag_name(tag)
        self.tags[tag.id] = deepcopy(tag)

    async def update_tag(self, tag: Tag) -> None:
        if tag.id not in self.tags:
            raise RecordNotFoundError(tag.id)
        self._check_tag_name(tag)
        self.tags[tag.id] = deepcopy(tag)

    async def delete_tag(self, tag_id: str) -> None:
        if self.tags.pop(tag_id, None) is None:
            raise RecordNotFoundError(tag_id)
        for post in self.posts.values():
            if tag_id in post.tag_ids:
                post.tag_ids = [t for t in post.tag_ids if t != tag_id]

    async def count_posts_per_tag(self) -> dict[str, int]:
        counts = dict.fromkeys(self.tags, 0)
        for post in self.posts.values():
            for tag_id in post.tag_ids:
                if tag_id in counts:
                    counts[tag_id] += 1
        return counts

    # ==========================================================================
    # Categories
    # ==========================================================================

    def _check_category(self, category: Category) -> None:
        for other in self.categories.values():
            if other.id == category.id:
                continue
            if other.name == category.name:
                raise UniqueViolationError("name")
            if other.slug == category.slug:
                raise UniqueViolationError("slug")

    async def list_categories(self) -> list[Category]:
        return [deepcopy(c) for c in self.categories.values()]

    async def get_category(self, category_id: str) -> Category | None:
        return _copy(self.categories.get(category_id))

    async def get_category_by_name(self, name: str) -> Category | None:
        for category in self.categories.values():
            if category.name == name:
                return deepcopy(category)
        return None

    async def get_category_by_slug(self, slug: str) -> Category | None:
        for category in self.categories.values():
            if category.slug == slug:
                return deepcopy(category)
        return None

    async def insert_category(self, category: Category) -> None:
        self._check_category(category)
        self.categories[category.id] = deepcopy(category)

    async def update_category(self, category: Category) -> None:
        if category.id not in self.categories:
            raise RecordNotFoundError(category.id)
        self._check_category(category)
        self.categories[category.id] = deepcopy(category)

    async def delete_category(self, category_id: str) -> None:
        if self.categories.pop(category_id, None) is None:
            raise RecordNotFoundError(category_id)
        for post in self.posts.values():
            if post.category_id == category_id:
                post.category_id = None

    # ==========================================================================
    # Reports
    # ==========================================================================

    async def get_report(self, report_id: str) -> PostReport | None:
        return _copy(self.reports.get(report_id))

    async def insert_report(self, report: PostReport) -> None:
        if report.post_id not in self.posts:
            raise ForeignKeyViolationError("post_id")
        for other in self.reports.values():
            if other.post_id == report.post_id and other.reporter_id == report.reporter_id:
                raise UniqueViolationError("report")
        self.reports[report.id] = deepcopy(report)

    async def update_report(self, report: PostReport) -> None:
        if report.id not in self.reports:
            raise RecordNotFoundError(report.id)
        self.reports[report.id] = deepcopy(report)

    async def list_reports(self, offset: int, limit: int) -> list[PostReport]:
        reports = _newest_first(list(self.reports.values()))
        return [deepcopy(r) for r in reports[offset : offset + limit]]

    async def count_reports(self) -> int:
        return len(self.reports)

    async def get_comment_report(self, report_id: str) -> CommentReport | None:
        return _copy(self.comment_reports.get(report_id))

    async def insert_comment_report(self, report: CommentReport) -> None:
        if report.comment_id not in self.comments:
            raise ForeignKeyViolationError("comment_id")
        for other in self.comment_reports.values():
            if (
                other.comment_id == report.comment_id
                and other.reporter_id == report.reporter_id
            ):
                raise UniqueViolationError("report")
        self.comment_reports[report.id] = deepcopy(report)

    async def update_comment_report(self, report: CommentReport) -> None:
        if report.id not in self.comment_reports:
            raise RecordNotFoundError(report.id)
        self.comment_reports[report.id] = deepcopy(report)

    async def list_comment_reports(self, offset: int, limit: int) -> list[CommentReport]:
        reports = _newest_first(list(self.comment_reports.values()))
        return [deepcopy(r) for r in reports[offset : offset + limit]]

    async def count_comment_reports(self) -> int:
        return len(self.comment_reports)

    async def list_post_comment_reports(self, post_id: str) -> list[CommentReport]:
        reports = [r for r in self.comment_reports.values() if r.post_id == post_id]
        return [deepcopy(r) for r in sorted(reports, key=lambda r: r.created_at)]
