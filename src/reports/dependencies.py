"""FastAPI dependencies for post reports."""

from typing import Annotated

from fastapi import Depends, Request

from src.core.dependencies import get_app_service

from .service import ReportService


async def get_report_service(request: Request) -> ReportService:
    return get_app_service(request, "report_service")


ReportServiceDep = Annotated[ReportService, Depends(get_report_service)]
