"""Post categories.

Note: Router is not exported here to avoid circular imports.
"""

from .models import CATEGORIES_TABLES_CQL, Category, create_category
from .service import CategoryService


__all__ = ["CATEGORIES_TABLES_CQL", "Category", "CategoryService", "create_category"]
