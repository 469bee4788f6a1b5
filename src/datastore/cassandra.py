"""Cassandra datastore.

Prepared statements over the tables declared in each feature's `models.py`.
Uniqueness (slugs, tag and category names, likes, saves, one report per
reporter) is enforced with lightweight transactions on small lookup tables.

Queries run through `session.aexecute` from cassandra-asyncio-driver, so the
event loop never blocks on a round trip.
"""

import asyncio
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

from src.categories.models import Category
from src.comments.models import Comment, CommentLike, ModerationStatus
from src.core.database import shutdown_async_cassandra
from src.core.errors import (
    ForeignKeyViolationError,
    RecordNotFoundError,
    UniqueViolationError,
)
from src.posts.models import Post, PostLike, SavedPost
from src.reports.models import CommentReport, PostReport
from src.tags.models import Tag, tag_name_key


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from cassandra.query import PreparedStatement


logger = structlog.get_logger(__name__)


class CassandraDatastore:
    """Datastore backed by a Cassandra keyspace."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()
        logger.info("cassandra_datastore_initialized", keyspace=keyspace)

    def _prepare(self, cql: str) -> "PreparedStatement":
        return self.session.prepare(cql.format(ks=self.keyspace))

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        # Posts
        self._insert_post = self._prepare("""
            INSERT INTO {ks}.posts
            (id, author_id, author_username, title, slug, content, published,
             allow_comments, category_id, tag_ids, pinned_comment_id,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_post = self._prepare("SELECT * FROM {ks}.posts WHERE id = ?")
        self._all_posts = self._prepare("SELECT * FROM {ks}.posts")
        self._delete_post = self._prepare("DELETE FROM {ks}.posts WHERE id = ?")
        self._set_pinned = self._prepare(
            "UPDATE {ks}.posts SET pinned_comment_id = ? WHERE id = ?"
        )
        self._remove_post_tag = self._prepare(
            "UPDATE {ks}.posts SET tag_ids = tag_ids - ? WHERE id = ?"
        )
        self._clear_post_category = self._prepare(
            "UPDATE {ks}.posts SET category_id = null WHERE id = ?"
        )
        self._claim_slug = self._prepare(
            "INSERT INTO {ks}.posts_by_slug (slug, post_id) VALUES (?, ?) IF NOT EXISTS"
        )
        self._release_slug = self._prepare(
            "DELETE FROM {ks}.posts_by_slug WHERE slug = ?"
        )

        # Post likes
        self._insert_post_like = self._prepare("""
            INSERT INTO {ks}.post_likes (post_id, user_id, created_at)
            VALUES (?, ?, ?) IF NOT EXISTS
        """)
        self._delete_post_like = self._prepare(
            "DELETE FROM {ks}.post_likes WHERE post_id = ? AND user_id = ? IF EXISTS"
        )
        self._count_post_likes = self._prepare(
            "SELECT COUNT(*) AS like_count FROM {ks}.post_likes WHERE post_id = ?"
        )
        self._delete_post_likes = self._prepare(
            "DELETE FROM {ks}.post_likes WHERE post_id = ?"
        )

        # Saved posts
        self._insert_saved_post = self._prepare("""
            INSERT INTO {ks}.saved_posts (user_id, post_id, created_at)
            VALUES (?, ?, ?) IF NOT EXISTS
        """)
        self._delete_saved_post = self._prepare(
            "DELETE FROM {ks}.saved_posts WHERE user_id = ? AND post_id = ? IF EXISTS"
        )
        self._get_saved_posts = self._prepare(
            "SELECT * FROM {ks}.saved_posts WHERE user_id = ?"
        )
        self._all_saved_posts = self._prepare(
            "SELECT user_id, post_id FROM {ks}.saved_posts"
        )
        self._unsave_post = self._prepare(
            "DELETE FROM {ks}.saved_posts WHERE user_id = ? AND post_id = ?"
        )

        # Comments
        self._insert_comment = self._prepare("""
            INSERT INTO {ks}.comments
            (post_id, created_at, id, user_id, username, parent_id, content,
             updated_at, deleted_at, moderation_status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._insert_comment_key = self._prepare("""
            INSERT INTO {ks}.comments_by_id (id, post_id, created_at)
            VALUES (?, ?, ?)
        """)
        self._get_comment_key = self._prepare(
            "SELECT post_id, created_at FROM {ks}.comments_by_id WHERE id = ?"
        )
        self._get_comment = self._prepare("""
            SELECT * FROM {ks}.comments
            WHERE post_id = ? AND created_at = ? AND id = ?
        """)
        self._get_post_comments = self._prepare(
            "SELECT * FROM {ks}.comments WHERE post_id = ?"
        )
        self._all_comments = self._prepare("SELECT * FROM {ks}.comments")
        self._soft_delete_comment = self._prepare("""
            UPDATE {ks}.comments SET deleted_at = ?
            WHERE post_id = ? AND created_at = ? AND id = ?
        """)
        self._delete_post_comments = self._prepare(
            "DELETE FROM {ks}.comments WHERE post_id = ?"
        )
        self._delete_comment_key = self._prepare(
            "DELETE FROM {ks}.comments_by_id WHERE id = ?"
        )

        # Comment likes
        self._insert_comment_like = self._prepare("""
            INSERT INTO {ks}.comment_likes (comment_id, user_id, created_at)
            VALUES (?, ?, ?) IF NOT EXISTS
        """)
        self._delete_comment_like = self._prepare(
            "DELETE FROM {ks}.comment_likes WHERE comment_id = ? AND user_id = ? IF EXISTS"
        )
        self._count_comment_likes = self._prepare(
            "SELECT COUNT(*) AS like_count FROM {ks}.comment_likes WHERE comment_id = ?"
        )
        self._delete_comment_likes = self._prepare(
            "DELETE FROM {ks}.comment_likes WHERE comment_id = ?"
        )

        # Tags
        self._insert_tag = self._prepare(
            "INSERT INTO {ks}.tags (id, name, created_at) VALUES (?, ?, ?)"
        )
        self._get_tag = self._prepare("SELECT * FROM {ks}.tags WHERE id = ?")
        self._all_tags = self._prepare("SELECT * FROM {ks}.tags")
        self._delete_tag = self._prepare("DELETE FROM {ks}.tags WHERE id = ?")
        self._claim_tag_name = self._prepare(
            "INSERT INTO {ks}.tags_by_name (name_key, tag_id) VALUES (?, ?) IF NOT EXISTS"
        )
        self._get_tag_name = self._prepare(
            "SELECT tag_id FROM {ks}.tags_by_name WHERE name_key = ?"
        )
        self._release_tag_name = self._prepare(
            "DELETE FROM {ks}.tags_by_name WHERE name_key = ?"
        )

        # Categories
        self._insert_category = self._prepare(
            "INSERT INTO {ks}.categories (id, name, slug, created_at) VALUES (?, ?, ?, ?)"
        )
        self._get_category = self._prepare("SELECT * FROM {ks}.categories WHERE id = ?")
        self._all_categories = self._prepare("SELECT * FROM {ks}.categories")
        self._delete_category = self._prepare(
            "DELETE FROM {ks}.categories WHERE id = ?"
        )
        self._claim_category_name = self._prepare("""
            INSERT INTO {ks}.categories_by_name (name, category_id)
            VALUES (?, ?) IF NOT EXISTS
        """)
        self._get_category_name = self._prepare(
            "SELECT category_id FROM {ks}.categories_by_name WHERE name = ?"
        )
        self._release_category_name = self._prepare(
            "DELETE FROM {ks}.categories_by_name WHERE name = ?"
        )
        self._claim_category_slug = self._prepare("""
            INSERT INTO {ks}.categories_by_slug (slug, category_id)
            VALUES (?, ?) IF NOT EXISTS
        """)
        self._get_category_slug = self._prepare(
            "SELECT category_id FROM {ks}.categories_by_slug WHERE slug = ?"
        )
        self._release_category_slug = self._prepare(
            "DELETE FROM {ks}.categories_by_slug WHERE slug = ?"
        )

        # Reports
        self._insert_report = self._prepare("""
            INSERT INTO {ks}.post_reports
            (id, post_id, reporter_id, reporter_username, reason, status,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_report = self._prepare("SELECT * FROM {ks}.post_reports WHERE id = ?")
        self._all_reports = self._prepare("SELECT * FROM {ks}.post_reports")
        self._delete_report = self._prepare(
            "DELETE FROM {ks}.post_reports WHERE id = ?"
        )
        self._claim_report = self._prepare("""
            INSERT INTO {ks}.post_reports_by_reporter (post_id, reporter_id, report_id)
            VALUES (?, ?, ?) IF NOT EXISTS
        """)
        self._release_report = self._prepare("""
            DELETE FROM {ks}.post_reports_by_reporter
            WHERE post_id = ? AND reporter_id = ?
        """)

        # Comment reports
        self._insert_comment_report = self._prepare("""
            INSERT INTO {ks}.comment_reports
            (id, comment_id, post_id, reporter_id, reporter_username, reason,
             status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_comment_report = self._prepare(
            "SELECT * FROM {ks}.comment_reports WHERE id = ?"
        )
        self._all_comment_reports = self._prepare("SELECT * FROM {ks}.comment_reports")
        self._delete_comment_report = self._prepare(
            "DELETE FROM {ks}.comment_reports WHERE id = ?"
        )
        self._claim_comment_report = self._prepare("""
            INSERT INTO {ks}.comment_reports_by_reporter
            (comment_id, reporter_id, report_id)
            VALUES (?, ?, ?) IF NOT EXISTS
        """)
        self._release_comment_report = self._prepare("""
            DELETE FROM {ks}.comment_reports_by_reporter
            WHERE comment_id = ? AND reporter_id = ?
        """)

    # ==========================================================================
    # Execution
    # ==========================================================================

    async def _execute(self, statement: Any, params: tuple = ()) -> list[Any]:
        result = await self.session.aexecute(statement, params)
        return list(result)

    async def _execute_conditional(self, statement: Any, params: tuple = ()) -> bool:
        """Run a lightweight transaction and report whether it was applied."""
        result = await self.session.aexecute(statement, params)
        return result.was_applied

    async def _first(self, statement: Any, params: tuple = ()) -> Any | None:
        result = await self.session.aexecute(statement, params)
        return result.one()

    async def ping(self) -> bool:
        try:
            await self._execute("SELECT release_version FROM system.local")
        except Exception as e:
            logger.warning("cassandra_ping_failed", error=str(e))
            return False
        return True

    async def close(self) -> None:
        await shutdown_async_cassandra()

    # ==========================================================================
    # Posts
    # ==========================================================================

    def _post_params(self, post: Post) -> tuple:
        return (
            post.id,
            post.author_id,
            post.author_username,
            post.title,
            post.slug,
            post.content,
            post.published,
            post.allow_comments,
            post.category_id,
            set(post.tag_ids),
            post.pinned_comment_id,
            post.created_at,
            post.updated_at,
        )

    async def get_post(self, post_id: str) -> Post | None:
        row = await self._first(self._get_post, (post_id,))
        return Post.from_row(row) if row else None

    async def _all(self) -> list[Post]:
        return [Post.from_row(row) for row in await self._execute(self._all_posts)]

    async def insert_post(self, post: Post) -> None:
        if not await self._execute_conditional(self._claim_slug, (post.slug, post.id)):
            raise UniqueViolationError("slug")
        await self._execute(self._insert_post, self._post_params(post))

    async def update_post(self, post: Post) -> None:
        existing = await self.get_post(post.id)
        if existing is None:
            raise RecordNotFoundError(post.id)

        if existing.slug != post.slug:
            if not await self._execute_conditional(self._claim_slug, (post.slug, post.id)):
                raise UniqueViolationError("slug")
            await self._execute(self._release_slug, (existing.slug,))

        await self._execute(self._insert_post, self._post_params(post))

    async def set_pinned_comment(self, post_id: str, comment_id: str | None) -> None:
        await self._execute(self._set_pinned, (comment_id, post_id))

    async def delete_post(self, post_id: str) -> None:
        post = await self.get_post(post_id)
        if post is None:
            raise RecordNotFoundError(post_id)

        comment_rows = await self._execute(self._get_post_comments, (post_id,))
        reports = [r for r in await self._all_report_records() if r.post_id == post_id]
        comment_reports = [
            r for r in await self._all_comment_report_records() if r.post_id == post_id
        ]
        savers = [
            row.user_id
            for row in await self._execute(self._all_saved_posts)
            if row.post_id == post_id
        ]

        await asyncio.gather(
            *(self._execute(self._delete_comment_key, (row.id,)) for row in comment_rows),
            *(
                self._execute(self._delete_comment_likes, (row.id,))
                for row in comment_rows
            ),
            *(self._delete_report_record(report) for report in reports),
            *(self._delete_comment_report_record(r) for r in comment_reports),
            *(self._execute(self._unsave_post, (uid, post_id)) for uid in savers),
        )
        await self._execute(self._delete_post_comments, (post_id,))
        await self._execute(self._delete_post_likes, (post_id,))
        await self._execute(self._release_slug, (post.slug,))
        await self._execute(self._delete_post, (post_id,))

    @staticmethod
    def _matches(
        post: Post,
        published_only: bool,
        category_id: str | None,
        tag_id: str | None,
        author_id: str | None,
    ) -> bool:
        return (
            (not published_only or post.published)
            and (category_id is None or post.category_id == category_id)
            and (tag_id is None or tag_id in post.tag_ids)
            and (author_id is None or post.author_id == author_id)
        )

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
        posts = [
            p
            for p in await self._all()
            if self._matches(p, published_only, category_id, tag_id, author_id)
        ]
        posts.sort(key=lambda p: p.created_at, reverse=True)
        end = None if limit is None else offset + limit
        return posts[offset:end]

    async def count_posts(
        self,
        *,
        published_only: bool = True,
        category_id: str | None = None,
        tag_id: str | None = None,
        author_id: str | None = None,
    ) -> int:
        return sum(
            1
            for p in await self._all()
            if self._matches(p, published_only, category_id, tag_id, author_id)
        )

    async def add_post_like(self, like: PostLike) -> None:
        applied = await self._execute_conditional(
            self._insert_post_like, (like.post_id, like.user_id, like.created_at)
        )
        if not applied:
            raise UniqueViolationError("like")

    async def remove_post_like(self, post_id: str, user_id: str) -> bool:
        return await self._execute_conditional(
            self._delete_post_like, (post_id, user_id)
        )

    async def _count(self, statement: Any, key: str) -> int:
        row = await self._first(statement, (key,))
        return int(row.like_count) if row else 0

    async def count_post_likes(self, post_ids: list[str]) -> dict[str, int]:
        counts = await asyncio.gather(
            *(self._count(self._count_post_likes, post_id) for post_id in post_ids)
        )
        return dict(zip(post_ids, counts, strict=True))

    async def add_saved_post(self, saved: SavedPost) -> None:
        applied = await self._execute_conditional(
            self._insert_saved_post, (saved.user_id, saved.post_id, saved.created_at)
        )
        if not applied:
            raise UniqueViolationError("saved")

    async def remove_saved_post(self, post_id: str, user_id: str) -> bool:
        return await self._execute_conditional(
            self._delete_saved_post, (user_id, post_id)
        )

    async def list_saved_posts(self, user_id: str) -> list[SavedPost]:
        rows = await self._execute(self._get_saved_posts, (user_id,))
        saved = [SavedPost.from_row(row) for row in rows]
        saved.sort(key=lambda s: s.created_at, reverse=True)
        return saved

    # ==========================================================================
    # Comments
    # ==========================================================================

    def _comment_params(self, comment: Comment) -> tuple:
        return (
            comment.post_id,
            comment.created_at,
            comment.id,
            comment.user_id,
            comment.username,
            comment.parent_id,
            comment.content,
            comment.updated_at,
            comment.deleted_at,
            comment.moderation_status.value,
        )

    async def get_comment(self, comment_id: str) -> Comment | None:
        key = await self._first(self._get_comment_key, (comment_id,))
        if key is None:
            return None
        row = await self._first(
            self._get_comment, (key.post_id, key.created_at, comment_id)
        )
        return Comment.from_row(row) if row else None

    async def insert_comment(self, comment: Comment) -> None:
        await self._execute(self._insert_comment, self._comment_params(comment))
        await self._execute(
            self._insert_comment_key,
            (comment.id, comment.post_id, comment.created_at),
        )

    async def update_comment(self, comment: Comment) -> None:
        await self._execute(self._insert_comment, self._comment_params(comment))

    async def soft_delete_comments(
        self, comment_ids: list[str], deleted_at: datetime
    ) -> None:
        keys = await asyncio.gather(
            *(self._first(self._get_comment_key, (cid,)) for cid in comment_ids)
        )
        await asyncio.gather(
            *(
                self._execute(
                    self._soft_delete_comment,
                    (deleted_at, key.post_id, key.created_at, comment_id),
                )
                for comment_id, key in zip(comment_ids, keys, strict=True)
                if key is not None
            )
        )

    async def list_post_comments(self, post_id: str) -> list[Comment]:
        rows = await self._execute(self._get_post_comments, (post_id,))
        return [c for c in map(Comment.from_row, rows) if not c.is_deleted]

    async def count_comments(self, post_ids: list[str]) -> dict[str, int]:
        threads = await asyncio.gather(
            *(self.list_post_comments(post_id) for post_id in post_ids)
        )
        return {post_id: len(comments) for post_id, comments in zip(post_ids, threads, strict=True)}

    async def _recent_comments(self) -> list[Comment]:
        published = {p.id for p in await self._all() if p.published}
        comments = [
            c
            for c in map(Comment.from_row, await self._execute(self._all_comments))
            if c.parent_id is None
            and not c.is_deleted
            and c.moderation_status is not ModerationStatus.HIDDEN
            and c.post_id in published
        ]
        comments.sort(key=lambda c: c.created_at, reverse=True)
        return comments

    async def list_recent_comments(self, offset: int, limit: int) -> list[Comment]:
        return (await self._recent_comments())[offset : offset + limit]

    async def count_recent_comments(self) -> int:
        return len(await self._recent_comments())

    async def add_comment_like(self, like: CommentLike) -> None:
        applied = await self._execute_conditional(
            self._insert_comment_like, (like.comment_id, like.user_id, like.created_at)
        )
        if not applied:
            raise UniqueViolationError("like")

    async def remove_comment_like(self, comment_id: str, user_id: str) -> bool:
        return await self._execute_conditional(
            self._delete_comment_like, (comment_id, user_id)
        )

    async def count_comment_likes(self, comment_ids: list[str]) -> dict[str, int]:
        counts = await asyncio.gather(
            *(self._count(self._count_comment_likes, cid) for cid in comment_ids)
        )
        return dict(zip(comment_ids, counts, strict=True))

    async def count_comments_by_commenter(self, post_author_id: str) -> dict[str, int]:
        post_ids = [p.id for p in await self._all() if p.author_id == post_author_id]
        threads = await asyncio.gather(
            *(self.list_post_comments(post_id) for post_id in post_ids)
        )
        counts: dict[str, int] = {}
        for comments in threads:
            for comment in comments:
                counts[comment.user_id] = counts.get(comment.user_id, 0) + 1
        return counts

    # ==========================================================================
    # Tags
    # ==========================================================================

    async def list_tags(self) -> list[Tag]:
        return [Tag.from_row(row) for row in await self._execute(self._all_tags)]

    async def get_tag(self, tag_id: str) -> Tag | None:
        row = await self._first(self._get_tag, (tag_id,))
        return Tag.from_row(row) if row else None

    async def get_tag_by_name(self, name: str) -> Tag | None:
        row = await self._first(self._get_tag_name, (tag_name_key(name),))
        return await self.get_tag(row.tag_id) if row else None

    async def insert_tag(self, tag: Tag) -> None:
        if not await self._execute_conditional(self._claim_tag_name, (tag.name_key, tag.id)):
            raise UniqueViolationError("name")
        await self._execute(self._insert_tag, (tag.id, tag.name, tag.created_at))

    async def update_tag(self, tag: Tag) -> None:
        existing = await self.get_tag(tag.id)
        if existing is None:
            raise RecordNotFoundError(tag.id)

        if existing.name_key != tag.name_key:
            if not await self._execute_conditional(
                self._claim_tag_name, (tag.name_key, tag.id)
            ):
                raise UniqueViolationError("name")
            await self._execute(self._release_tag_name, (existing.name_key,))

        await self._execute(self._insert_tag, (tag.id, tag.name, tag.created_at))

    async def delete_tag(self, tag_id: str) -> None:
        tag = await self.get_tag(tag_id)
        if tag is None:
            raise RecordNotFoundError(tag_id)

        tagged = [p for p in await self._all() if tag_id in p.tag_ids]
        await asyncio.gather(
            *(self._execute(self._remove_post_tag, ({tag_id}, p.id)) for p in tagged)
        )
        await self._execute(self._release_tag_name, (tag.name_key,))
        await self._execute(self._delete_tag, (tag_id,))

    async def count_posts_per_tag(self) -> dict[str, int]:
        counts = {tag.id: 0 for tag in await self.list_tags()}
        for post in await self._all():
            for tag_id in post.tag_ids:
                if tag_id in counts:
                    counts[tag_id] += 1
        return counts

    # ==========================================================================
    # Categories
    # ==========================================================================

    async def list_categories(self) -> list[Category]:
        return [Category.from_row(r) for r in await self._execute(self._all_categories)]

    async def get_category(self, category_id: str) -> Category | None:
        row = await self._first(self._get_category, (category_id,))
        return Category.from_row(row) if row else None

    async def get_category_by_name(self, name: str) -> Category | None:
        row = await self._first(self._get_category_name, (name,))
        return await self.get_category(row.category_id) if row else None

    async def get_category_by_slug(self, slug: str) -> Category | None:
        row = await self._first(self._get_category_slug, (slug,))
        return await self.get_category(row.category_id) if row else None

    async def _claim_category(self, category: Category, existing: Category | None) -> None:
        """Claim name and slug, releasing a claim made here if the next one fails."""
        claimed_name = False
        if existing is None or existing.name != category.name:
            if not await self._execute_conditional(
                self._claim_category_name, (category.name, category.id)
            ):
                raise UniqueViolationError("name")
            claimed_name = True

        if existing is None or existing.slug != category.slug:
            if not await self._execute_conditional(
                self._claim_category_slug, (category.slug, category.id)
            ):
                if claimed_name:
                    await self._execute(self._release_category_name, (category.name,))
                raise UniqueViolationError("slug")

    async def insert_category(self, category: Category) -> None:
        await self._claim_category(category, None)
        await self._execute(
            self._insert_category,
            (category.id, category.name, category.slug, category.created_at),
        )

    async def update_category(self, category: Category) -> None:
        existing = await self.get_category(category.id)
        if existing is None:
            raise RecordNotFoundError(category.id)

        await self._claim_category(category, existing)
        if existing.name != category.name:
            await self._execute(self._release_category_name, (existing.name,))
        if existing.slug != category.slug:
            await self._execute(self._release_category_slug, (existing.slug,))
        await self._execute(
            self._insert_category,
            (category.id, category.name, category.slug, category.created_at),
        )

    async def delete_category(self, category_id: str) -> None:
        category = await self.get_category(category_id)
        if category is None:
            raise RecordNotFoundError(category_id)

        linked = [p for p in await self._all() if p.category_id == category_id]
        await asyncio.gather(
            *(self._execute(self._clear_post_category, (p.id,)) for p in linked)
        )
        await self._execute(self._release_category_name, (category.name,))
        await self._execute(self._release_category_slug, (category.slug,))
        await self._execute(self._delete_category, (category_id,))

    # ==========================================================================
    # Reports
    # ==========================================================================

    def _report_params(self, report: PostReport) -> tuple:
        return (
            report.id,
            report.post_id,
            report.reporter_id,
            report.reporter_username,
            report.reason,
            report.status.value,
            report.created_at,
            report.updated_at,
        )

    async def _all_report_records(self) -> list[PostReport]:
        return [PostReport.from_row(r) for r in await self._execute(self._all_reports)]

    async def _delete_report_record(self, report: PostReport) -> None:
        await self._execute(self._release_report, (report.post_id, report.reporter_id))
        await self._execute(self._delete_report, (report.id,))

    async def get_report(self, report_id: str) -> PostReport | None:
        row = await self._first(self._get_report, (report_id,))
        return PostReport.from_row(row) if row else None

    async def insert_report(self, report: PostReport) -> None:
        applied = await self._execute_conditional(
            self._claim_report, (report.post_id, report.reporter_id, report.id)
        )
        if not applied:
            raise UniqueViolationError("report")
        await self._execute(self._insert_report, self._report_params(report))

    async def update_report(self, report: PostReport) -> None:
        await self._execute(self._insert_report, self._report_params(report))

    async def list_reports(self, offset: int, limit: int) -> list[PostReport]:
        reports = await self._all_report_records()
        reports.sort(key=lambda r: r.created_at, reverse=True)
        return reports[offset : offset + limit]

    async def count_reports(self) -> int:
        return len(await self._all_report_records())

    def _comment_report_params(self, report: CommentReport) -> tuple:
        return (
            report.id,
            report.comment_id,
            report.post_id,
            report.reporter_id,
            report.reporter_username,
            report.reason,
            report.status.value,
            report.created_at,
            report.updated_at,
        )

    async def _all_comment_report_records(self) -> list[CommentReport]:
        rows = await self._execute(self._all_comment_reports)
        return [CommentReport.from_row(r) for r in rows]

    async def _delete_comment_report_record(self, report: CommentReport) -> None:
        await self._execute(
            self._release_comment_report, (report.comment_id, report.reporter_id)
        )
        await self._execute(self._delete_comment_report, (report.id,))

    async def get_comment_report(self, report_id: str) -> CommentReport | None:
        row = await self._first(self._get_comment_report, (report_id,))
        return CommentReport.from_row(row) if row else None

    async def insert_comment_report(self, report: CommentReport) -> None:
        if await self._first(self._get_comment_key, (report.comment_id,)) is None:
            raise ForeignKeyViolationError("comment_id")
        applied = await self._execute_conditional(
            self._claim_comment_report,
            (report.comment_id, report.reporter_id, report.id),
        )
        if not applied:
            raise UniqueViolationError("report")
        await self._execute(
            self._insert_comment_report, self._comment_report_params(report)
        )

    async def update_comment_report(self, report: CommentReport) -> None:
        await self._execute(
            self._insert_comment_report, self._comment_report_params(report)
        )

    async def list_comment_reports(self, offset: int, limit: int) -> list[CommentReport]:
        reports = await self._all_comment_report_records()
        reports.sort(key=lambda r: r.created_at, reverse=True)
        return reports[offset : offset + limit]

    async def count_comment_reports(self) -> int:
        return len(await self._all_comment_report_records())

    async def list_post_comment_reports(self, post_id: str) -> list[CommentReport]:
        reports = [
            r for r in await self._all_comment_report_records() if r.post_id == post_id
        ]
        reports.sort(key=lambda r: r.created_at)
        return reports
