"""Pydantic schemas for categories."""

from datetime import datetime

from pydantic import BaseModel, Field

from .models import Category


class CategoryRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class CategoryResponse(BaseModel):
    id: str
    name: str
    slug: str
    created_at: datetime

    @classmethod
    def from_category(cls, category: Category) -> "CategoryResponse":
        return cls(
            id=category.id,
            name=category.name,
            slug=category.slug,
            created_at=category.created_at,
        )
