"""FastAPI dependencies for the comment system."""

from typing import Annotated

from fastapi import Depends, Request

from src.core.dependencies import get_app_service

from .service import CommentService


async def get_comment_service(request: Request) -> CommentService:
    """Get comment service from app state."""
    return get_app_service(request, "comment_service")


CommentServiceDep = Annotated[CommentService, Depends(get_comment_service)]
