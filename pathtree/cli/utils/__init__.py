"""CLI utilities for running async operations and formatting output."""

from pathtree.cli.utils.async_runner import coro
from pathtree.cli.utils.formatters import error, header, info, success, tree_lines

__all__ = [
    "coro",
    "error",
    "header",
    "info",
    "success",
    "tree_lines",
]
