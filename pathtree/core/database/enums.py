"""Enumerations shared by the tree engines and settings.

Kept free of other pathtree imports so settings can load it without
pulling in the engines.
"""

from __future__ import annotations

from enum import StrEnum


class DeletePolicy(StrEnum):
    """What happens to the descendants of a deleted node."""

    DELETE = "DELETE"
    REPARENT = "REPARENT"


__all__ = [
    "DeletePolicy",
]
