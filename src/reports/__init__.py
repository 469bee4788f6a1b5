"""Post and comment reports with admin moderation.

Note: Router is not exported here to avoid circular imports.
"""

from .models import (
    REPORTS_TABLES_CQL,
    CommentReport,
    PostReport,
    ReportStatus,
    create_comment_report,
    create_report,
)
from .service import ReportService


__all__ = [
    "REPORTS_TABLES_CQL",
    "CommentReport",
    "PostReport",
    "ReportService",
    "ReportStatus",
    "create_comment_report",
    "create_report",
]
