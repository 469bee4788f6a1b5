"""Post tags.

Note: Router is not exported here to avoid circular imports.
"""

from .models import TAGS_TABLES_CQL, Tag, create_tag, tag_name_key
from .service import TagService


__all__ = ["TAGS_TABLES_CQL", "Tag", "TagService", "create_tag", "tag_name_key"]
