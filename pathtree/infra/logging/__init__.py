"""Logging infrastructure.

Basic usage:
    from pathtree.infra.logging import set_log_context
    import logging

    logger = logging.getLogger(__name__)

    # Set context once, all logs from this task include it
    set_log_context(tree_operation="reparent", node_id="B")
    logger.info("Descendant paths rewritten")

    # Lazy evaluation for expensive messages
    from pathtree.infra.logging import get_lazy_logger

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"Subtree: {dump(rows)}")  # Only runs if DEBUG enabled
"""

from pathtree.infra.logging.config import (
    complete,
    configure_logging,
    setup_logging,
    shutdown,
)
from pathtree.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    log_context,
    remove_from_log_context,
    set_log_context,
)
from pathtree.infra.logging.formatters import JSONFormatter
from pathtree.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "clear_log_context",
    "complete",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "log_context",
    "remove_from_log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
