"""Database models for tags.

Tag names are unique ignoring case; `tags_by_name` holds the lowercased name
and is written with IF NOT EXISTS.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import uuid4

from src.utils.dates import as_utc, utcnow


TAGS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.tags (
    id TEXT PRIMARY KEY,
    name TEXT,
    created_at TIMESTAMP
)
"""

TAGS_BY_NAME_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.tags_by_name (
    name_key TEXT PRIMARY KEY,
    tag_id TEXT
)
"""

TAGS_TABLES_CQL = [
    TAGS_TABLE_CQL,
    TAGS_BY_NAME_TABLE_CQL,
]


@dataclass
class Tag:
    id: str
    name: str
    created_at: datetime

    @property
    def name_key(self) -> str:
        return tag_name_key(self.name)

    @classmethod
    def from_row(cls, row: Any) -> "Tag":
        return cls(id=row.id, name=row.name, created_at=as_utc(row.created_at))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
        }


def tag_name_key(name: str) -> str:
    return name.strip().lower()


def create_tag(name: str) -> Tag:
    return Tag(id=str(uuid4()), name=name.strip(), created_at=utcnow())
