"""Tree maintenance settings.

Environment variables use TREE_ prefix.
Example: TREE_PATH_SEPARATOR=#, TREE_ON_DELETE=REPARENT, TREE_NUM_WORKERS=10

These values are only defaults. Each MaterializedPathTree receives its own
TreeSettings instance, so differently configured trees can coexist.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pathtree.core.database.enums import DeletePolicy


class TreeSettings(BaseSettings):
    """Materialized path tree configuration.

    Attributes:
        path_separator: Single character joining ids inside a path.
        on_delete: DELETE removes a deleted node's subtree, REPARENT
            attaches its children to its own parent.
        num_workers: Maximum concurrent row updates during a cascade.
        cursor_batch_size: Rows fetched per cursor round trip.

    Example:
        settings = TreeSettings(on_delete="REPARENT", num_workers=10)
        tree = MaterializedPathTree(session, Category, settings=settings)
    """

    path_separator: str = Field(
        default="#",
        min_length=1,
        max_length=1,
        description="Character joining ids inside a path; must never occur in an id",
    )
    on_delete: DeletePolicy = Field(
        default=DeletePolicy.DELETE,
        description="What happens to the descendants of a deleted node",
    )
    num_workers: int = Field(
        default=5,
        ge=1,
        le=1000,
        description="Maximum concurrent row updates during a cascading rewrite",
    )
    cursor_batch_size: int = Field(
        default=500,
        ge=1,
        le=100_000,
        description="Rows fetched per round trip when streaming a cascade",
    )

    model_config = SettingsConfigDict(
        env_prefix="TREE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )
