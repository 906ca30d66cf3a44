"""Materialized path codec with navigation utilities.

A materialized path stores the chain of ancestor ids of a row, root-most
first, joined by a single separator character and ending with the row's
own id:

- "A"        a root
- "A#B#C"    C, child of B, grandchild of A

The module-level functions are the codec used by the maintenance engines.
MaterializedPath wraps them for Python-side path arithmetic without
requiring database queries.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator

DEFAULT_SEPARATOR = "#"


def compose(parent_path: str | None, own_id: Any, separator: str = DEFAULT_SEPARATOR) -> str:
    """Build a child path from its parent's path and its own id.

    Example:
        >>> compose("A#B", "C")
        'A#B#C'
        >>> compose(None, "A")
        'A'
    """
    if not parent_path:
        return str(own_id)
    return f"{parent_path}{separator}{own_id}"


def ancestor_ids(path: str | None, separator: str = DEFAULT_SEPARATOR) -> list[str]:
    """Return ancestor ids root-most first, excluding the node's own id.

    Example:
        >>> ancestor_ids("A#B#C")
        ['A', 'B']
    """
    if not path:
        return []
    return path.split(separator)[:-1]


def depth(path: str | None, separator: str = DEFAULT_SEPARATOR) -> int:
    """Number of segments in path (0 for an empty path)."""
    return len(path.split(separator)) if path else 0


def descendant_prefix(path: str, separator: str = DEFAULT_SEPARATOR) -> str:
    """Prefix shared by every strict descendant of path."""
    return f"{path}{separator}"


def is_descendant_path(
    candidate: str | None,
    ancestor_path: str | None,
    separator: str = DEFAULT_SEPARATOR,
) -> bool:
    """Check whether candidate lies strictly below ancestor_path.

    Example:
        >>> is_descendant_path("A#B#C", "A#B")
        True
        >>> is_descendant_path("A#BB", "A#B")
        False
    """
    if not candidate or not ancestor_path:
        return False
    return candidate.startswith(descendant_prefix(ancestor_path, separator))


def rebase(path: str, old_prefix: str, new_prefix: str) -> str:
    """Swap a leading prefix of path, once.

    Only a prefix match is replaced; occurrences of old_prefix further
    along the path are left alone. Paths that do not start with
    old_prefix are returned unchanged.

    Example:
        >>> rebase("A#B#C", "A#B#", "D#B#")
        'D#B#C'
        >>> rebase("A#B#C", "A#B#", "A#")
        'A#C'
    """
    if not path.startswith(old_prefix):
        return path
    return new_prefix + path[len(old_prefix):]


class MaterializedPath:
    """Python wrapper for materialized path strings.

    Example:
        >>> path = MaterializedPath("A#B#C")
        >>> path.depth
        3
        >>> path.parent
        MaterializedPath('A#B')
        >>> path.is_ancestor_of("A#B#C#D")
        True
        >>> path / "D"
        MaterializedPath('A#B#C#D')

    Note:
        The separator must never appear inside an id. This is not
        validated; the caller's id domain has to exclude it.
    """

    __slots__ = ("_path", "_segments", "separator")
    _path: str
    _segments: list[str]

    def __init__(self, path: str | MaterializedPath | None, separator: str = DEFAULT_SEPARATOR) -> None:
        if isinstance(path, MaterializedPath):
            self._path = path._path
            self._segments = path._segments
            self.separator = path.separator
        else:
            self._path = str(path).strip() if path else ""
            self._segments = self._path.split(separator) if self._path else []
            self.separator = separator

    @property
    def depth(self) -> int:
        """Number of segments (the node's level)."""
        return len(self._segments)

    @property
    def segments(self) -> list[str]:
        """Copy of the id segments, root-most first."""
        return list(self._segments)

    @property
    def ancestor_ids(self) -> list[str]:
        """Ancestor ids, excluding the leaf."""
        return self._segments[:-1]

    @property
    def leaf(self) -> str:
        """Own id of the node this path belongs to."""
        return self._segments[-1] if self._segments else ""

    @property
    def parent(self) -> MaterializedPath | None:
        """Parent path, or None for roots and empty paths."""
        if self.depth <= 1:
            return None
        return self._join(self._segments[:-1])

    @property
    def ancestors(self) -> list[MaterializedPath]:
        """All ancestor paths from root to parent."""
        return [self._join(self._segments[:i]) for i in range(1, self.depth)]

    def child(self, own_id: Any) -> MaterializedPath:
        """Create a child path by appending an id."""
        return MaterializedPath(compose(self._path, own_id, self.separator), self.separator)

    def is_ancestor_of(self, other: str | MaterializedPath) -> bool:
        """True if self is a proper ancestor of other."""
        return is_descendant_path(str(other), self._path, self.separator)

    def is_descendant_of(self, other: str | MaterializedPath) -> bool:
        """True if self is a proper descendant of other."""
        return is_descendant_path(self._path, str(other), self.separator)

    def _join(self, segments: list[str]) -> MaterializedPath:
        return MaterializedPath(self.separator.join(segments), self.separator)

    def __truediv__(self, other: Any) -> MaterializedPath:
        return self.child(other)

    def __iter__(self) -> Iterator[str]:
        return iter(self._segments)

    def __len__(self) -> int:
        return self.depth

    def __str__(self) -> str:
        return self._path

    def __repr__(self) -> str:
        return f"MaterializedPath({self._path!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, MaterializedPath):
            return self._path == other._path
        if isinstance(other, str):
            return self._path == other
        return False

    def __hash__(self) -> int:
        return hash(self._path)

    def __bool__(self) -> bool:
        return bool(self._path)


__all__ = [
    "DEFAULT_SEPARATOR",
    "MaterializedPath",
    "ancestor_ids",
    "compose",
    "depth",
    "descendant_prefix",
    "is_descendant_path",
    "rebase",
]
