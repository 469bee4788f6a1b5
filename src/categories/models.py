"""Database models for categories.

Both the name and the slug derived from it are unique; each has a lookup
table written with IF NOT EXISTS.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import uuid4

from src.utils.dates import as_utc, utcnow
from src.utils.sanitize import generate_slug


CATEGORIES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.categories (
    id TEXT PRIMARY KEY,
    name TEXT,
    slug TEXT,
    created_at TIMESTAMP
)
"""

CATEGORIES_BY_NAME_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.categories_by_name (
    name TEXT PRIMARY KEY,
    category_id TEXT
)
"""

CATEGORIES_BY_SLUG_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.categories_by_slug (
    slug TEXT PRIMARY KEY,
    category_id TEXT
)
"""

CATEGORIES_TABLES_CQL = [
    CATEGORIES_TABLE_CQL,
    CATEGORIES_BY_NAME_TABLE_CQL,
    CATEGORIES_BY_SLUG_TABLE_CQL,
]


@dataclass
class Category:
    id: str
    name: str
    slug: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Category":
        return cls(
            id=row.id,
            name=row.name,
            slug=row.slug,
            created_at=as_utc(row.created_at),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "created_at": self.created_at.isoformat(),
        }


def create_category(name: str) -> Category:
    name = name.strip()
    return Category(
        id=str(uuid4()),
        name=name,
        slug=generate_slug(name, fallback_prefix="category"),
        created_at=utcnow(),
    )
