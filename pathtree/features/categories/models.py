"""Category database model.

Categories are the demo tree: string ids chosen by the caller, a display
name, and the ``parent``/``path`` columns from MaterializedPathMixin.
"""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from pathtree.core.database import Base, MaterializedPathMixin


class Category(Base, MaterializedPathMixin):
    """A node of the category tree."""

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Category(id={self.id!r}, path={self.path!r})>"
