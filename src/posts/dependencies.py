"""FastAPI dependencies for posts."""

from typing import Annotated

from fastapi import Depends, Request

from src.core.dependencies import get_app_service

from .service import PostService


async def get_post_service(request: Request) -> PostService:
    return get_app_service(request, "post_service")


PostServiceDep = Annotated[PostService, Depends(get_post_service)]
