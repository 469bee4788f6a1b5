"""Comment thread service.

Business logic for:
- Comment and reply creation with bounded thread depth
- Owner-only edit and cascading soft delete
- Likes
- Pinning one comment per post (post author only)
- Moderation by the post author (approve / hide) and its review queue
- Thread and recent-comment listings with the top commenter badge
"""

import asyncio
from collections import defaultdict
from typing import TYPE_CHECKING

import structlog

from src.auth.permissions import require_auth
from src.core.cache import ResourceKind
from src.core.errors import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    UniqueViolationError,
    ValidationError,
)
from src.utils.dates import utcnow
from src.utils.sanitize import sanitize_text

from .models import (
    MAX_COMMENT_LENGTH,
    MAX_THREAD_DEPTH,
    TOP_COMMENTER_THRESHOLD,
    Comment,
    CommentLike,
    CommentNode,
    ModerationStatus,
    create_comment,
)


if TYPE_CHECKING:
    from src.auth.schemas import Principal
    from src.core.cache import ResponseCache
    from src.core.pagination import PageParams
    from src.datastore import Datastore
    from src.posts.models import Post
    from src.reports.models import CommentReport


logger = structlog.get_logger(__name__)


MODERATION_ACTIONS = {
    "approve": ModerationStatus.APPROVED,
    "hide": ModerationStatus.HIDDEN,
}


# ==============================================================================
# Content
# ==============================================================================


def clean_comment_content(content: str) -> str:
    """Sanitize comment text and enforce its length limits.

    Raises:
        ValidationError: If the sanitized text is empty or too long
    """
    cleaned = sanitize_text(content)
    if not cleaned or len(cleaned) > MAX_COMMENT_LENGTH:
        raise ValidationError(
            details=[
                {
                    "field": "content",
                    "message": (
                        f"Comment must be between 1 and {MAX_COMMENT_LENGTH} characters"
                    ),
                }
            ]
        )
    return cleaned


# ==============================================================================
# Comment Service
# ==============================================================================


class CommentService:
    """Service for threaded comments."""

    def __init__(self, datastore: "Datastore", cache: "ResponseCache"):
        self.datastore = datastore
        self.cache = cache

    # ==========================================================================
    # Lookups
    # ==========================================================================

    async def _get_post(self, post_id: str) -> "Post":
        post = await self.datastore.get_post(post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    async def _get_post_comment(self, post: "Post", comment_id: str) -> Comment:
        """Fetch a live comment of `post`; missing, deleted or foreign is 404."""
        comment = await self.datastore.get_comment(comment_id)
        if comment is None or comment.is_deleted or comment.post_id != post.id:
            raise NotFoundError("Comment not found")
        return comment

    async def _like_count(self, comment_id: str) -> int:
        counts = await self.datastore.count_comment_likes([comment_id])
        return counts.get(comment_id, 0)

    async def _invalidate(self) -> None:
        await self.cache.invalidate_resources(ResourceKind.COMMENT)

    async def thread_depth(self, comment: Comment) -> int:
        """Count hops from `comment` up to the top-level comment of its thread.

        The walk does at most MAX_THREAD_DEPTH lookups. A chain still
        unfinished at that point reports MAX_THREAD_DEPTH; a dangling parent
        reference ends the walk.
        """
        depth = 0
        current = comment
        while current.parent_id is not None and depth < MAX_THREAD_DEPTH:
            parent = await self.datastore.get_comment(current.parent_id)
            if parent is None:
                break
            depth += 1
            current = parent
        return depth

    # ==========================================================================
    # Create
    # ==========================================================================

    async def create_comment(
        self,
        principal: "Principal | None",
        post_id: str,
        content: str,
    ) -> Comment:
        """Create a top-level comment.

        Raises:
            UnauthorizedError: No principal
            NotFoundError: Post missing
            ForbiddenError: Comments disabled on the post
            ValidationError: Content empty or too long after sanitization
        """
        require_auth(principal).raise_if_denied()

        post = await self._get_post(post_id)
        if not post.allow_comments:
            raise ForbiddenError("Comments are disabled for this post")

        comment = create_comment(
            post_id=post.id,
            user_id=principal.id,
            username=principal.username,
            content=clean_comment_content(content),
        )
        await self.datastore.insert_comment(comment)
        await self._invalidate()

        logger.info("comment_created", comment_id=comment.id, post_id=post.id)
        return comment

    async def reply_to_comment(
        self,
        principal: "Principal | None",
        post_id: str,
        parent_id: str,
        content: str,
    ) -> Comment:
        """Reply to a comment of the same post.

        Raises:
            BadRequestError: The parent already sits at the maximum depth
        """
        require_auth(principal).raise_if_denied()

        post = await self._get_post(post_id)
        if not post.allow_comments:
            raise ForbiddenError("Comments are disabled for this post")

        parent = await self._get_post_comment(post, parent_id)
        if await self.thread_depth(parent) >= MAX_THREAD_DEPTH:
            raise BadRequestError(
                f"Maximum thread depth of {MAX_THREAD_DEPTH} levels reached"
            )

        reply = create_comment(
            post_id=post.id,
            user_id=principal.id,
            username=principal.username,
            content=clean_comment_content(content),
            parent_id=parent.id,
        )
        await self.datastore.insert_comment(reply)
        await self._invalidate()

        logger.info(
            "comment_reply_created",
            comment_id=reply.id,
            parent_id=parent.id,
            post_id=post.id,
        )
        return reply

    # ==========================================================================
    # Edit / Delete
    # ==========================================================================

    async def update_comment(
        self,
        principal: "Principal | None",
        post_id: str,
        comment_id: str,
        content: str,
    ) -> tuple[Comment, int]:
        """Edit a comment's content; only its owner may do so.

        Returns:
            Updated comment and its like count
        """
        require_auth(principal).raise_if_denied()

        post = await self._get_post(post_id)
        comment = await self._get_post_comment(post, comment_id)
        if comment.user_id != principal.id:
            raise ForbiddenError("You can only edit your own comments")

        comment.content = clean_comment_content(content)
        comment.updated_at = utcnow()
        await self.datastore.update_comment(comment)
        await self._invalidate()

        logger.info("comment_updated", comment_id=comment.id, post_id=post.id)
        return comment, await self._like_count(comment.id)

    async def delete_comment(
        self,
        principal: "Principal | None",
        post_id: str,
        comment_id: str,
    ) -> list[str]:
        """Soft-delete a comment and all of its replies.

        Clears the post's pin when it points into the deleted subtree.

        Returns:
            Ids of every comment marked deleted
        """
        require_auth(principal).raise_if_denied()

        post = await self._get_post(post_id)
        comment = await self._get_post_comment(post, comment_id)
        if comment.user_id != principal.id:
            raise ForbiddenError("You can only delete your own comments")

        children: dict[str, list[str]] = defaultdict(list)
        for other in await self.datastore.list_post_comments(post.id):
            if other.parent_id is not None:
                children[other.parent_id].append(other.id)

        subtree: list[str] = []
        pending = [comment.id]
        while pending:
            current = pending.pop()
            subtree.append(current)
            pending.extend(children.get(current, ()))

        await self.datastore.soft_delete_comments(subtree, utcnow())
        if post.pinned_comment_id in subtree:
            await self.datastore.set_pinned_comment(post.id, None)
        await self._invalidate()

        logger.info(
            "comment_deleted",
            comment_id=comment.id,
            post_id=post.id,
            deleted_count=len(subtree),
        )
        return subtree

    # ==========================================================================
    # Likes
    # ==========================================================================

    async def like_comment(
        self,
        principal: "Principal | None",
        post_id: str,
        comment_id: str,
    ) -> int:
        """Like a comment once per user; returns the new like count."""
        require_auth(principal).raise_if_denied()

        post = await self._get_post(post_id)
        comment = await self._get_post_comment(post, comment_id)
        try:
            await self.datastore.add_comment_like(
                CommentLike(comment_id=comment.id, user_id=principal.id)
            )
        except UniqueViolationError as e:
            raise BadRequestError("You have already liked this comment") from e
        await self._invalidate()

        logger.info("comment_liked", comment_id=comment.id, post_id=post.id)
        return await self._like_count(comment.id)

    async def unlike_comment(
        self,
        principal: "Principal | None",
        post_id: str,
        comment_id: str,
    ) -> int:
        require_auth(principal).raise_if_denied()

        post = await self._get_post(post_id)
        comment = await self._get_post_comment(post, comment_id)
        if not await self.datastore.remove_comment_like(comment.id, principal.id):
            raise BadRequestError("You have not liked this comment")
        await self._invalidate()

        logger.info("comment_unliked", comment_id=comment.id, post_id=post.id)
        return await self._like_count(comment.id)

    # ==========================================================================
    # Pinning
    # ==========================================================================

    async def pin_comment(
        self,
        principal: "Principal | None",
        post_id: str,
        comment_id: str,
    ) -> str:
        """Pin a comment on its post, replacing any previous pin.

        Checks run in order: post exists, comment exists, comment belongs to
        the post, caller is the post author.

        Returns:
            The pinned comment id
        """
        require_auth(principal).raise_if_denied()

        post = await self._get_post(post_id)
        comment = await self.datastore.get_comment(comment_id)
        if comment is None or comment.is_deleted:
            raise NotFoundError("Comment not found")
        if comment.post_id != post.id:
            raise NotFoundError("Comment does not belong to this post")
        if post.author_id != principal.id:
            raise ForbiddenError("Only the post author can pin comments")

        await self.datastore.set_pinned_comment(post.id, comment.id)
        await self._invalidate()

        logger.info(
            "comment_pinned",
            comment_id=comment.id,
            post_id=post.id,
            replaced=post.pinned_comment_id,
        )
        return comment.id

    async def unpin_comment(
        self,
        principal: "Principal | None",
        post_id: str,
        comment_id: str,
    ) -> None:
        require_auth(principal).raise_if_denied()

        post = await self._get_post(post_id)
        if post.author_id != principal.id:
            raise ForbiddenError("Only the post author can unpin comments")
        if post.pinned_comment_id is None:
            raise BadRequestError("No comment is currently pinned")
        if post.pinned_comment_id != comment_id:
            raise BadRequestError("This comment is not pinned")

        await self.datastore.set_pinned_comment(post.id, None)
        await self._invalidate()

        logger.info("comment_unpinned", comment_id=comment_id, post_id=post.id)

    # ==========================================================================
    # Moderation
    # ==========================================================================

    async def moderate_comment(
        self,
        principal: "Principal | None",
        post_id: str,
        comment_id: str,
        action: str,
    ) -> tuple[Comment, int]:
        """Approve or hide a comment on one of the caller's posts.

        Checks run in order: post exists, caller is the post author, action
        is known, comment exists on the post.

        Returns:
            The moderated comment and its like count
        """
        require_auth(principal).raise_if_denied()

        post = await self._get_post(post_id)
        if post.author_id != principal.id:
            raise ForbiddenError("Only the post author can moderate comments")
        status = MODERATION_ACTIONS.get(action)
        if status is None:
            raise BadRequestError('Invalid action. Must be "approve" or "hide"')
        comment = await self._get_post_comment(post, comment_id)

        comment.moderation_status = status
        await self.datastore.update_comment(comment)
        await self._invalidate()

        logger.info(
            "comment_moderated",
            comment_id=comment.id,
            post_id=post.id,
            moderation_status=status.value,
        )
        return comment, await self._like_count(comment.id)

    async def get_moderation_queue(
        self,
        principal: "Principal | None",
        post_id: str,
        status: ModerationStatus | None = None,
    ) -> tuple["Post", list[tuple[Comment, int, list["CommentReport"]]]]:
        """Live comments of a post with the reports filed against them.

        Only the post author may look. Comments are ordered newest first and
        can be narrowed to one moderation status.

        Returns:
            The post and (comment, like_count, reports) triples
        """
        require_auth(principal).raise_if_denied()

        post = await self._get_post(post_id)
        if post.author_id != principal.id:
            raise ForbiddenError("Only the post author can view the moderation queue")

        comments = [
            c
            for c in await self.datastore.list_post_comments(post.id)
            if status is None or c.moderation_status is status
        ]
        comments.sort(key=lambda c: c.created_at, reverse=True)

        like_counts, reports = await asyncio.gather(
            self.datastore.count_comment_likes([c.id for c in comments]),
            self.datastore.list_post_comment_reports(post.id),
        )
        by_comment: dict[str, list["CommentReport"]] = defaultdict(list)
        for report in reports:
            by_comment[report.comment_id].append(report)

        return post, [
            (comment, like_counts.get(comment.id, 0), by_comment.get(comment.id, []))
            for comment in comments
        ]

    # ==========================================================================
    # Listings
    # ==========================================================================

    async def is_post_author(self, principal: "Principal | None", post_id: str) -> bool:
        if principal is None:
            return False
        post = await self.datastore.get_post(post_id)
        return post is not None and post.author_id == principal.id

    async def top_commenters(self, post: "Post") -> set[str]:
        """Users with at least TOP_COMMENTER_THRESHOLD live comments across
        the posts of `post`'s author. The author never qualifies."""
        counts = await self.datastore.count_comments_by_commenter(post.author_id)
        return {
            user_id
            for user_id, count in counts.items()
            if count >= TOP_COMMENTER_THRESHOLD and user_id != post.author_id
        }

    async def get_post_comments(
        self, post_id: str, principal: "Principal | None" = None
    ) -> tuple["Post", list[CommentNode]]:
        """Build the comment tree of a post.

        Top-level comments and each level of replies are ordered oldest first.
        Nesting stops at MAX_THREAD_DEPTH. Hidden comments, and the replies
        under them, are left out unless `principal` is the post author.

        Returns:
            The post (for its pin) and the top-level nodes
        """
        post = await self._get_post(post_id)
        if not post.allow_comments:
            raise ForbiddenError("Comments are disabled for this post")

        show_hidden = principal is not None and principal.id == post.author_id
        comments = [
            c
            for c in await self.datastore.list_post_comments(post.id)
            if show_hidden or c.moderation_status is not ModerationStatus.HIDDEN
        ]
        like_counts, top = await asyncio.gather(
            self.datastore.count_comment_likes([c.id for c in comments]),
            self.top_commenters(post),
        )

        children: dict[str | None, list[Comment]] = defaultdict(list)
        for comment in sorted(comments, key=lambda c: c.created_at):
            children[comment.parent_id].append(comment)

        def build(comment: Comment, depth: int) -> CommentNode:
            node = CommentNode(
                comment=comment,
                like_count=like_counts.get(comment.id, 0),
                is_top_commenter=comment.user_id in top,
            )
            if depth < MAX_THREAD_DEPTH:
                node.replies = [
                    build(reply, depth + 1) for reply in children.get(comment.id, ())
                ]
            return node

        return post, [build(root, 0) for root in children.get(None, ())]

    async def get_recent_comments(
        self, params: "PageParams"
    ) -> tuple[list[tuple[Comment, "Post", int]], int]:
        """Newest top-level comments on published posts.

        Returns:
            (comment, post, like_count) triples for the page, and the total
        """
        comments, total = await asyncio.gather(
            self.datastore.list_recent_comments(params.offset, params.limit),
            self.datastore.count_recent_comments(),
        )

        post_ids = list(dict.fromkeys(c.post_id for c in comments))
        posts, like_counts = await asyncio.gather(
            asyncio.gather(*(self.datastore.get_post(pid) for pid in post_ids)),
            self.datastore.count_comment_likes([c.id for c in comments]),
        )
        posts_by_id = {post.id: post for post in posts if post is not None}

        items = [
            (comment, posts_by_id[comment.post_id], like_counts.get(comment.id, 0))
            for comment in comments
            if comment.post_id in posts_by_id
        ]
        return items, total
