"""Pydantic schemas for tags."""

from datetime import datetime

from pydantic import BaseModel, Field

from .models import Tag


MAX_TAG_NAME_LENGTH = 50


class TagRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=MAX_TAG_NAME_LENGTH)


class TagResponse(BaseModel):
    id: str
    name: str
    post_count: int = 0
    created_at: datetime

    @classmethod
    def from_tag(cls, tag: Tag, post_count: int = 0) -> "TagResponse":
        return cls(
            id=tag.id, name=tag.name, post_count=post_count, created_at=tag.created_at
        )
