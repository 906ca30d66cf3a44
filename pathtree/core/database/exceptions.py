"""Tree maintenance exceptions.

Custom exceptions for path maintenance and store operations that provide
better error messages and typing than raw SQLAlchemy exceptions.
"""
from __future__ import annotations

from typing import Any


class TreeError(Exception):
    """Base exception for tree operations.

    Raised when a tree mutation or query fails. Carries a free-form
    ``details`` mapping that is rendered into the message and is handy
    for structured logging.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize tree error.

        Args:
            message: Error description
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Format error message with details."""
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class TreeReferenceError(TreeError):
    """Parent reference does not resolve to an existing row.

    Raised when a node is created or moved under a parent id that the
    store cannot find. Nothing is persisted for the node.

    Attributes:
        model_name: Name of the model class that wasn't found
        identifier: The key/value that was searched for
    """

    def __init__(self, model_name: str, identifier: dict[str, Any]):
        """Initialize dangling parent error.

        Args:
            model_name: Name of the model (e.g., "Category")
            identifier: Key-value pairs used in the lookup (e.g., {"parent": "A"})
        """
        self.model_name = model_name
        self.identifier = identifier

        id_str = ", ".join(f"{k}={v!r}" for k, v in identifier.items())
        message = f"{model_name} parent not found with {id_str}"

        super().__init__(message, details={"model": model_name, **identifier})

    def __repr__(self) -> str:
        """Repr for debugging."""
        return f"TreeReferenceError(model={self.model_name!r}, identifier={self.identifier!r})"


class NodeNotFoundError(TreeError):
    """No row exists with the requested id."""

    def __init__(self, model_name: str, identifier: dict[str, Any]):
        self.model_name = model_name
        self.identifier = identifier
        id_str = ", ".join(f"{k}={v!r}" for k, v in identifier.items())
        super().__init__(f"{model_name} not found with {id_str}", details={"model": model_name, **identifier})


class StoreError(TreeError):
    """The underlying store failed while reading or writing rows.

    The original driver exception is chained as ``__cause__``. A cascading
    rewrite stops dispatching at the first StoreError; rows rewritten before
    the failure are not rolled back.
    """

    def __init__(self, message: str, operation: str | None = None):
        """Initialize store error.

        Args:
            message: Error description
            operation: Store operation that failed (find, update_field, ...)
        """
        details = {"operation": operation} if operation else {}
        super().__init__(message, details=details)


class ConfigurationError(TreeError):
    """Invalid configuration detected before any work started."""

    def __init__(self, message: str, setting: str | None = None):
        """Initialize configuration error.

        Args:
            message: Error description
            setting: Name of the offending setting (if applicable)
        """
        details = {"setting": setting} if setting else {}
        super().__init__(message, details=details)


__all__ = [
    "ConfigurationError",
    "NodeNotFoundError",
    "StoreError",
    "TreeError",
    "TreeReferenceError",
]
