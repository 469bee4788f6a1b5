"""Database models for post and comment reports.

A user reports a given post (or comment) at most once; the `*_by_reporter`
lookup tables are keyed by (target id, reporter_id) and written with
IF NOT EXISTS.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from src.utils.dates import as_utc, utcnow


class ReportStatus(str, Enum):
    """Report moderation status."""

    PENDING = "PENDING"
    REVIEWED = "REVIEWED"
    REJECTED = "REJECTED"


POST_REPORTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.post_reports (
    id TEXT PRIMARY KEY,
    post_id TEXT,
    reporter_id TEXT,
    reporter_username TEXT,
    reason TEXT,
    status TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

POST_REPORTS_BY_REPORTER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.post_reports_by_reporter (
    post_id TEXT,
    reporter_id TEXT,
    report_id TEXT,
    PRIMARY KEY ((post_id, reporter_id))
)
"""

COMMENT_REPORTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comment_reports (
    id TEXT PRIMARY KEY,
    comment_id TEXT,
    post_id TEXT,
    reporter_id TEXT,
    reporter_username TEXT,
    reason TEXT,
    status TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COMMENT_REPORTS_BY_REPORTER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comment_reports_by_reporter (
    comment_id TEXT,
    reporter_id TEXT,
    report_id TEXT,
    PRIMARY KEY ((comment_id, reporter_id))
)
"""

REPORTS_TABLES_CQL = [
    POST_REPORTS_TABLE_CQL,
    POST_REPORTS_BY_REPORTER_TABLE_CQL,
    COMMENT_REPORTS_TABLE_CQL,
    COMMENT_REPORTS_BY_REPORTER_TABLE_CQL,
]


@dataclass
class PostReport:
    """Report filed against a post."""

    id: str
    post_id: str
    reporter_id: str
    reporter_username: str
    reason: str
    status: ReportStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "PostReport":
        return cls(
            id=row.id,
            post_id=row.post_id,
            reporter_id=row.reporter_id,
            reporter_username=row.reporter_username or "",
            reason=row.reason,
            status=ReportStatus(row.status),
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at or row.created_at),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "post_id": self.post_id,
            "reporter_id": self.reporter_id,
            "reporter_username": self.reporter_username,
            "reason": self.reason,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


def create_report(
    post_id: str,
    reporter_id: str,
    reporter_username: str,
    reason: str,
) -> PostReport:
    now = utcnow()
    return PostReport(
        id=str(uuid4()),
        post_id=post_id,
        reporter_id=reporter_id,
        reporter_username=reporter_username,
        reason=reason,
        status=ReportStatus.PENDING,
        created_at=now,
        updated_at=now,
    )


@dataclass
class CommentReport:
    """Report filed against a comment; `post_id` is denormalized for listings."""

    id: str
    comment_id: str
    post_id: str
    reporter_id: str
    reporter_username: str
    reason: str
    status: ReportStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "CommentReport":
        return cls(
            id=row.id,
            comment_id=row.comment_id,
            post_id=row.post_id,
            reporter_id=row.reporter_id,
            reporter_username=row.reporter_username or "",
            reason=row.reason,
            status=ReportStatus(row.status),
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at or row.created_at),
        )


def create_comment_report(
    comment_id: str,
    post_id: str,
    reporter_id: str,
    reporter_username: str,
    reason: str,
) -> CommentReport:
    now = utcnow()
    return CommentReport(
        id=str(uuid4()),
        comment_id=comment_id,
        post_id=post_id,
        reporter_id=reporter_id,
        reporter_username=reporter_username,
        reason=reason,
        status=ReportStatus.PENDING,
        created_at=now,
        updated_at=now,
    )
