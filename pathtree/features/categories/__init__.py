"""Category feature: demo tree model and its service."""

from pathtree.features.categories.models import Category
from pathtree.features.categories.service import CategoryService, slugify

__all__ = [
    "Category",
    "CategoryService",
    "slugify",
]
