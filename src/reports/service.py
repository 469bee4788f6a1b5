"""Post and comment report service.

Any authenticated user may report a post or a comment once; admins list
reports and move them between statuses. The first report on an approved
comment puts it back to PENDING for the post author to review.
"""

import asyncio
from typing import TYPE_CHECKING

import structlog

from src.auth.permissions import require_admin, require_auth
from src.comments.models import ModerationStatus
from src.comments.schemas import PostSummary
from src.core.cache import ResourceKind
from src.core.errors import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    UniqueViolationError,
)
from src.utils.dates import utcnow
from src.utils.sanitize import sanitize_text

from .models import (
    CommentReport,
    PostReport,
    ReportStatus,
    create_comment_report,
    create_report,
)
from .schemas import (
    CommentReportListResponse,
    CommentReportResponse,
    CommentSummary,
    ReportListResponse,
    ReportResponse,
)


if TYPE_CHECKING:
    from src.auth.schemas import Principal
    from src.core.cache import ResponseCache
    from src.core.pagination import PageParams
    from src.datastore import Datastore


logger = structlog.get_logger(__name__)


class ReportService:
    def __init__(self, datastore: "Datastore", cache: "ResponseCache"):
        self.datastore = datastore
        self.cache = cache

    async def _summaries(self, post_ids: list[str]) -> dict[str, PostSummary]:
        unique_ids = list(dict.fromkeys(post_ids))
        posts = await asyncio.gather(*(self.datastore.get_post(pid) for pid in unique_ids))
        return {
            post.id: PostSummary(id=post.id, title=post.title, slug=post.slug)
            for post in posts
            if post is not None
        }

    async def _respond(self, report: PostReport) -> ReportResponse:
        summaries = await self._summaries([report.post_id])
        return ReportResponse.from_report(report, summaries.get(report.post_id))

    async def create_report(
        self, principal: "Principal | None", post_id: str, reason: str
    ) -> ReportResponse:
        """File a report against a post.

        Raises:
            NotFoundError: Post missing
            ConflictError: The caller already reported this post
        """
        require_auth(principal).raise_if_denied()

        post = await self.datastore.get_post(post_id)
        if post is None:
            raise NotFoundError("Post not found")

        cleaned = sanitize_text(reason)
        if not cleaned:
            raise BadRequestError("A reason is required")

        report = create_report(
            post_id=post.id,
            reporter_id=principal.id,
            reporter_username=principal.username,
            reason=cleaned,
        )
        try:
            await self.datastore.insert_report(report)
        except UniqueViolationError as e:
            raise ConflictError("You have already reported this post") from e
        await self.cache.invalidate_resources(ResourceKind.REPORT)

        logger.info("post_reported", report_id=report.id, post_id=post.id)
        return await self._respond(report)

    async def list_reports(
        self, principal: "Principal | None", params: "PageParams"
    ) -> ReportListResponse:
        """Reports, newest first."""
        require_admin(principal).raise_if_denied()

        reports, total = await asyncio.gather(
            self.datastore.list_reports(params.offset, params.limit),
            self.datastore.count_reports(),
        )
        summaries = await self._summaries([r.post_id for r in reports])
        return ReportListResponse(
            reports=[
                ReportResponse.from_report(r, summaries.get(r.post_id)) for r in reports
            ],
            total=total,
            page=params.page,
            limit=params.limit,
        )

    async def update_status(
        self,
        principal: "Principal | None",
        report_id: str,
        status: ReportStatus,
    ) -> ReportResponse:
        """Set a report's status; any transition is allowed."""
        require_admin(principal).raise_if_denied()

        report = await self.datastore.get_report(report_id)
        if report is None:
            raise NotFoundError("Report not found")

        previous = report.status
        report.status = status
        report.updated_at = utcnow()
        await self.datastore.update_report(report)
        await self.cache.invalidate_resources(ResourceKind.REPORT)

        logger.info(
            "report_status_updated",
            report_id=report.id,
            previous=previous.value,
            status=status.value,
        )
        return await self._respond(report)

    # ==========================================================================
    # Comment reports
    # ==========================================================================

    async def _comment_summaries(
        self, comment_ids: list[str]
    ) -> dict[str, CommentSummary]:
        unique_ids = list(dict.fromkeys(comment_ids))
        comments = await asyncio.gather(
            *(self.datastore.get_comment(cid) for cid in unique_ids)
        )
        return {
            comment.id: CommentSummary.from_comment(comment)
            for comment in comments
            if comment is not None
        }

    async def _respond_comment_reports(
        self, reports: list[CommentReport]
    ) -> list[CommentReportResponse]:
        comments, posts = await asyncio.gather(
            self._comment_summaries([r.comment_id for r in reports]),
            self._summaries([r.post_id for r in reports]),
        )
        return [
            CommentReportResponse.from_report(
                r, comments.get(r.comment_id), posts.get(r.post_id)
            )
            for r in reports
        ]

    async def create_comment_report(
        self,
        principal: "Principal | None",
        post_id: str,
        comment_id: str,
        reason: str,
    ) -> CommentReportResponse:
        """File a report against a comment of a post.

        Raises:
            NotFoundError: Post missing, or comment missing, deleted or on
                another post
            ConflictError: The caller already reported this comment
        """
        require_auth(principal).raise_if_denied()

        post = await self.datastore.get_post(post_id)
        if post is None:
            raise NotFoundError("Post not found")
        comment = await self.datastore.get_comment(comment_id)
        if comment is None or comment.is_deleted or comment.post_id != post.id:
            raise NotFoundError("Comment not found")

        cleaned = sanitize_text(reason)
        if not cleaned:
            raise BadRequestError("A reason is required")

        report = create_comment_report(
            comment_id=comment.id,
            post_id=post.id,
            reporter_id=principal.id,
            reporter_username=principal.username,
            reason=cleaned,
        )
        try:
            await self.datastore.insert_comment_report(report)
        except UniqueViolationError as e:
            raise ConflictError("You have already reported this comment") from e

        if comment.moderation_status is ModerationStatus.APPROVED:
            comment.moderation_status = ModerationStatus.PENDING
            await self.datastore.update_comment(comment)
        await self.cache.invalidate_resources(ResourceKind.REPORT, ResourceKind.COMMENT)

        logger.info(
            "comment_reported",
            report_id=report.id,
            comment_id=comment.id,
            post_id=post.id,
        )
        return (await self._respond_comment_reports([report]))[0]

    async def list_comment_reports(
        self, principal: "Principal | None", params: "PageParams"
    ) -> CommentReportListResponse:
        """Comment reports, newest first."""
        require_admin(principal).raise_if_denied()

        reports, total = await asyncio.gather(
            self.datastore.list_comment_reports(params.offset, params.limit),
            self.datastore.count_comment_reports(),
        )
        return CommentReportListResponse(
            reports=await self._respond_comment_reports(reports),
            total=total,
            page=params.page,
            limit=params.limit,
        )

    async def update_comment_report_status(
        self,
        principal: "Principal | None",
        report_id: str,
        status: ReportStatus,
    ) -> CommentReportResponse:
        require_admin(principal).raise_if_denied()

        report = await self.datastore.get_comment_report(report_id)
        if report is None:
            raise NotFoundError("Report not found")

        previous = report.status
        report.status = status
        report.updated_at = utcnow()
        await self.datastore.update_comment_report(report)
        await self.cache.invalidate_resources(ResourceKind.REPORT)

        logger.info(
            "comment_report_status_updated",
            report_id=report.id,
            previous=previous.value,
            status=status.value,
        )
        return (await self._respond_comment_reports([report]))[0]
