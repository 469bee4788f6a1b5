"""Post and comment report API endpoints.

Reports are filed under the post or comment they target and moderated under
/reports and /reports/comments.
"""

from fastapi import APIRouter

from src.auth.dependencies import CurrentPrincipal
from src.core.pagination import Pagination
from src.core.responses import created, ok

from .dependencies import ReportServiceDep
from .schemas import ReportCreateRequest, ReportStatusRequest


router = APIRouter(tags=["reports"])


@router.post("/posts/{post_id}/report", summary="Report post")
async def report_post(
    post_id: str,
    data: ReportCreateRequest,
    report_service: ReportServiceDep,
    principal: CurrentPrincipal,
):
    report = await report_service.create_report(principal, post_id, data.reason)
    return created(report=report.model_dump(mode="json"))


@router.get("/reports", summary="List reports")
async def list_reports(
    params: Pagination,
    report_service: ReportServiceDep,
    principal: CurrentPrincipal,
):
    """Admin only. Newest first."""
    result = await report_service.list_reports(principal, params)
    return ok(**result.model_dump(mode="json"))


@router.patch("/reports/{report_id}", summary="Update report status")
async def update_report_status(
    report_id: str,
    data: ReportStatusRequest,
    report_service: ReportServiceDep,
    principal: CurrentPrincipal,
):
    report = await report_service.update_status(principal, report_id, data.status)
    return ok(report=report.model_dump(mode="json"))


@router.post(
    "/posts/{post_id}/comments/{comment_id}/report", summary="Report comment"
)
async def report_comment(
    post_id: str,
    comment_id: str,
    data: ReportCreateRequest,
    report_service: ReportServiceDep,
    principal: CurrentPrincipal,
):
    report = await report_service.create_comment_report(
        principal, post_id, comment_id, data.reason
    )
    return created(
        message="Comment reported successfully", report=report.model_dump(mode="json")
    )


@router.get("/reports/comments", summary="List comment reports")
async def list_comment_reports(
    params: Pagination,
    report_service: ReportServiceDep,
    principal: CurrentPrincipal,
):
    """Admin only. Newest first, with the reported comment and its post."""
    result = await report_service.list_comment_reports(principal, params)
    return ok(**result.model_dump(mode="json"))


@router.patch("/reports/comments/{report_id}", summary="Update comment report status")
async def update_comment_report_status(
    report_id: str,
    data: ReportStatusRequest,
    report_service: ReportServiceDep,
    principal: CurrentPrincipal,
):
    report = await report_service.update_comment_report_status(
        principal, report_id, data.status
    )
    return ok(report=report.model_dump(mode="json"))
