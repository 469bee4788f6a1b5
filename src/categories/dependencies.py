"""FastAPI dependencies for categories."""

from typing import Annotated

from fastapi import Depends, Request

from src.core.dependencies import get_app_service

from .service import CategoryService


async def get_category_service(request: Request) -> CategoryService:
    return get_app_service(request, "category_service")


CategoryServiceDep = Annotated[CategoryService, Depends(get_category_service)]
