"""Pydantic schemas for post and comment reports."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.comments.models import Comment, ModerationStatus
from src.comments.schemas import CommentResponse, PostSummary

from .models import CommentReport, PostReport, ReportStatus


MAX_REASON_LENGTH = 1000


class ReportCreateRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=MAX_REASON_LENGTH)


class ReportStatusRequest(BaseModel):
    status: ReportStatus


class ReportResponse(BaseModel):
    id: str
    post_id: str
    reporter_id: str
    reporter_username: str
    reason: str
    status: ReportStatus
    post: PostSummary | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_report(
        cls, report: PostReport, post: PostSummary | None = None
    ) -> "ReportResponse":
        return cls(
            id=report.id,
            post_id=report.post_id,
            reporter_id=report.reporter_id,
            reporter_username=report.reporter_username,
            reason=report.reason,
            status=report.status,
            post=post,
            created_at=report.created_at,
            updated_at=report.updated_at,
        )


class ReportListResponse(BaseModel):
    reports: list[ReportResponse]
    total: int
    page: int
    limit: int


# ==============================================================================
# Comment reports
# ==============================================================================


class CommentSummary(BaseModel):
    id: str
    user_id: str
    username: str
    content: str
    moderation_status: ModerationStatus

    @classmethod
    def from_comment(cls, comment: Comment) -> "CommentSummary":
        return cls(
            id=comment.id,
            user_id=comment.user_id,
            username=comment.username,
            content=comment.content,
            moderation_status=comment.moderation_status,
        )


class CommentReportResponse(BaseModel):
    id: str
    comment_id: str
    post_id: str
    reporter_id: str
    reporter_username: str
    reason: str
    status: ReportStatus
    comment: CommentSummary | None = None
    post: PostSummary | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_report(
        cls,
        report: CommentReport,
        comment: CommentSummary | None = None,
        post: PostSummary | None = None,
    ) -> "CommentReportResponse":
        return cls(
            id=report.id,
            comment_id=report.comment_id,
            post_id=report.post_id,
            reporter_id=report.reporter_id,
            reporter_username=report.reporter_username,
            reason=report.reason,
            status=report.status,
            comment=comment,
            post=post,
            created_at=report.created_at,
            updated_at=report.updated_at,
        )


class CommentReportListResponse(BaseModel):
    reports: list[CommentReportResponse]
    total: int
    page: int
    limit: int


class ModerationQueueComment(CommentResponse):
    reports: list[CommentReportResponse] = Field(default_factory=list)


class ModerationQueueResponse(BaseModel):
    post: PostSummary
    comments: list[ModerationQueueComment]
