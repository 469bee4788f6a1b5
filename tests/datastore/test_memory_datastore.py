"""Tests for the in-memory datastore constraints."""

from datetime import UTC, datetime

import pytest

from src.categories.models import create_category
from src.comments.models import CommentLike, ModerationStatus, create_comment
from src.core.errors import (
    ForeignKeyViolationError,
    RecordNotFoundError,
    UniqueViolationError,
)
from src.datastore import MemoryDatastore
from src.posts.models import PostLike, SavedPost, create_post
from src.reports.models import create_comment_report, create_report
from src.tags.models import create_tag


def _post(slug: str = "hello", **fields):
    return create_post(
        author_id="author-1",
        author_username="alice",
        title=slug.title(),
        slug=slug,
        content="Body",
        published=fields.pop("published", True),
        **fields,
    )


class TestPosts:
    @pytest.mark.asyncio
    async def test_returns_copies(self, datastore: MemoryDatastore) -> None:
        post = _post()
        await datastore.insert_post(post)

        fetched = await datastore.get_post(post.id)
        fetched.title = "Mutated"
        assert (await datastore.get_post(post.id)).title == "Hello"

    @pytest.mark.asyncio
    async def test_slug_unique(self, datastore: MemoryDatastore) -> None:
        await datastore.insert_post(_post("same"))
        with pytest.raises(UniqueViolationError) as exc_info:
            await datastore.insert_post(_post("same"))
        assert exc_info.value.field == "slug"

    @pytest.mark.asyncio
    async def test_unknown_category(self, datastore: MemoryDatastore) -> None:
        with pytest.raises(ForeignKeyViolationError):
            await datastore.insert_post(_post(category_id="missing"))

    @pytest.mark.asyncio
    async def test_update_missing(self, datastore: MemoryDatastore) -> None:
        with pytest.raises(RecordNotFoundError):
            await datastore.update_post(_post())

    @pytest.mark.asyncio
    async def test_listing_filters_drafts(self, datastore: MemoryDatastore) -> None:
        await datastore.insert_post(_post("one"))
        await datastore.insert_post(_post("draft", published=False))
        await datastore.insert_post(_post("two"))

        listed = await datastore.list_posts()
        assert [p.slug for p in listed] == ["two", "one"]
        assert await datastore.count_posts() == 2
        assert await datastore.count_posts(published_only=False) == 3
        assert [p.slug for p in await datastore.list_posts(offset=1, limit=5)] == ["one"]

    @pytest.mark.asyncio
    async def test_likes_unique_and_counted(self, datastore: MemoryDatastore) -> None:
        post = _post()
        await datastore.insert_post(post)
        await datastore.add_post_like(PostLike(post_id=post.id, user_id="u1"))
        with pytest.raises(UniqueViolationError):
            await datastore.add_post_like(PostLike(post_id=post.id, user_id="u1"))

        assert await datastore.count_post_likes([post.id, "other"]) == {
            post.id: 1,
            "other": 0,
        }
        assert await datastore.remove_post_like(post.id, "u1") is True
        assert await datastore.remove_post_like(post.id, "u1") is False

    @pytest.mark.asyncio
    async def test_delete_cascades(self, datastore: MemoryDatastore) -> None:
        post = _post()
        await datastore.insert_post(post)
        comment = create_comment(post.id, "u1", "bob", "hi")
        await datastore.insert_comment(comment)
        await datastore.add_comment_like(CommentLike(comment_id=comment.id, user_id="u2"))
        await datastore.add_post_like(PostLike(post_id=post.id, user_id="u2"))
        await datastore.insert_report(create_report(post.id, "u2", "carol", "Spam"))
        await datastore.insert_comment_report(
            create_comment_report(comment.id, post.id, "u2", "carol", "Rude")
        )
        await datastore.add_saved_post(SavedPost(post_id=post.id, user_id="u2"))

        await datastore.delete_post(post.id)

        assert await datastore.get_comment(comment.id) is None
        assert datastore.comment_likes == {}
        assert datastore.post_likes == {}
        assert await datastore.count_reports() == 0
        assert await datastore.count_comment_reports() == 0
        assert await datastore.list_saved_posts("u2") == []

    @pytest.mark.asyncio
    async def test_saved_posts(self, datastore: MemoryDatastore) -> None:
        with pytest.raises(ForeignKeyViolationError):
            await datastore.add_saved_post(SavedPost(post_id="missing", user_id="u1"))

        post = _post()
        await datastore.insert_post(post)
        await datastore.add_saved_post(SavedPost(post_id=post.id, user_id="u1"))
        with pytest.raises(UniqueViolationError):
            await datastore.add_saved_post(SavedPost(post_id=post.id, user_id="u1"))

        assert [s.post_id for s in await datastore.list_saved_posts("u1")] == [post.id]
        assert await datastore.list_saved_posts("u2") == []
        assert await datastore.remove_saved_post(post.id, "u1")
        assert not await datastore.remove_saved_post(post.id, "u1")

    @pytest.mark.asyncio
    async def test_listing_by_author(self, datastore: MemoryDatastore) -> None:
        mine = _post("mine", published=False)
        theirs = _post("theirs")
        theirs.author_id = "author-2"
        await datastore.insert_post(mine)
        await datastore.insert_post(theirs)

        listed = await datastore.list_posts(published_only=False, author_id="author-1")
        assert [p.id for p in listed] == [mine.id]
        assert await datastore.count_posts(author_id="author-1") == 0


class TestComments:
    @pytest.mark.asyncio
    async def test_foreign_keys(self, datastore: MemoryDatastore) -> None:
        with pytest.raises(ForeignKeyViolationError):
            await datastore.insert_comment(create_comment("missing", "u1", "bob", "hi"))

        post = _post()
        await datastore.insert_post(post)
        with pytest.raises(ForeignKeyViolationError):
            await datastore.insert_comment(
                create_comment(post.id, "u1", "bob", "hi", parent_id="missing")
            )

    @pytest.mark.asyncio
    async def test_soft_delete_hides_from_listing(
        self, datastore: MemoryDatastore
    ) -> None:
        post = _post()
        await datastore.insert_post(post)
        keep = create_comment(post.id, "u1", "bob", "keep")
        gone = create_comment(post.id, "u1", "bob", "gone")
        await datastore.insert_comment(keep)
        await datastore.insert_comment(gone)

        await datastore.soft_delete_comments([gone.id], datetime.now(UTC))

        listed = await datastore.list_post_comments(post.id)
        assert [c.id for c in listed] == [keep.id]
        assert await datastore.count_comments([post.id]) == {post.id: 1}
        assert (await datastore.get_comment(gone.id)).is_deleted

    @pytest.mark.asyncio
    async def test_recent_skips_hidden(self, datastore: MemoryDatastore) -> None:
        post = _post()
        await datastore.insert_post(post)
        shown = create_comment(post.id, "u1", "bob", "shown")
        hidden = create_comment(post.id, "u1", "bob", "hidden")
        hidden.moderation_status = ModerationStatus.HIDDEN
        await datastore.insert_comment(shown)
        await datastore.insert_comment(hidden)

        recent = await datastore.list_recent_comments(0, 10)
        assert [c.id for c in recent] == [shown.id]
        assert await datastore.count_recent_comments() == 1

    @pytest.mark.asyncio
    async def test_count_by_commenter(self, datastore: MemoryDatastore) -> None:
        mine = _post("mine")
        theirs = _post("theirs")
        theirs.author_id = "author-2"
        await datastore.insert_post(mine)
        await datastore.insert_post(theirs)
        for post in (mine, mine, theirs):
            await datastore.insert_comment(create_comment(post.id, "u1", "bob", "hi"))
        await datastore.insert_comment(create_comment(mine.id, "u2", "carol", "hi"))

        assert await datastore.count_comments_by_commenter("author-1") == {
            "u1": 2,
            "u2": 1,
        }

    @pytest.mark.asyncio
    async def test_comment_reports(self, datastore: MemoryDatastore) -> None:
        with pytest.raises(ForeignKeyViolationError):
            await datastore.insert_comment_report(
                create_comment_report("missing", "p", "u2", "carol", "Spam")
            )

        post = _post()
        await datastore.insert_post(post)
        comment = create_comment(post.id, "u1", "bob", "hi")
        await datastore.insert_comment(comment)
        report = create_comment_report(comment.id, post.id, "u2", "carol", "Spam")
        await datastore.insert_comment_report(report)
        with pytest.raises(UniqueViolationError):
            await datastore.insert_comment_report(
                create_comment_report(comment.id, post.id, "u2", "carol", "Again")
            )

        assert [r.id for r in await datastore.list_post_comment_reports(post.id)] == [
            report.id
        ]
        assert await datastore.count_comment_reports() == 1


class TestTagsAndCategories:
    @pytest.mark.asyncio
    async def test_tag_names_unique_ignoring_case(
        self, datastore: MemoryDatastore
    ) -> None:
        await datastore.insert_tag(create_tag("Python"))
        with pytest.raises(UniqueViolationError):
            await datastore.insert_tag(create_tag("python"))
        assert (await datastore.get_tag_by_name("PYTHON")).name == "Python"

    @pytest.mark.asyncio
    async def test_delete_category_uncategorizes_posts(
        self, datastore: MemoryDatastore
    ) -> None:
        category = create_category("News")
        await datastore.insert_category(category)
        post = _post(category_id=category.id)
        await datastore.insert_post(post)

        await datastore.delete_category(category.id)

        assert (await datastore.get_post(post.id)).category_id is None

    @pytest.mark.asyncio
    async def test_category_uniqueness_fields(self, datastore: MemoryDatastore) -> None:
        await datastore.insert_category(create_category("Big News"))
        with pytest.raises(UniqueViolationError) as exc_info:
            await datastore.insert_category(create_category("big news"))
        assert exc_info.value.field == "slug"
