"""Pydantic Settings v2 configuration.

One settings model per concern, each read from environment variables with
its own prefix (TREE_, DB_, LOG_) and an optional .env file:

    from pathtree.core.settings import get_tree_settings

    settings = get_tree_settings()
    print(settings.num_workers)

Tree settings are defaults only: pass a TreeSettings instance to each
MaterializedPathTree to configure trees independently.
"""

from __future__ import annotations

from .database import DatabaseSettings
from .loader import (
    clear_settings_cache,
    get_db_settings,
    get_logging_settings,
    get_tree_settings,
)
from .logs import LoggingSettings
from .tree import TreeSettings

__all__ = [
    "DatabaseSettings",
    "LoggingSettings",
    "TreeSettings",
    "clear_settings_cache",
    "get_db_settings",
    "get_logging_settings",
    "get_tree_settings",
]
