"""FastAPI dependencies for tags."""

from typing import Annotated

from fastapi import Depends, Request

from src.core.dependencies import get_app_service

from .service import TagService


async def get_tag_service(request: Request) -> TagService:
    return get_app_service(request, "tag_service")


TagServiceDep = Annotated[TagService, Depends(get_tag_service)]
