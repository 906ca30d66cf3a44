"""Output formatting utilities for CLI commands."""

from typing import Any

import click


def success(message: str) -> None:
    """Print a success message in green."""
    click.secho(f"✓ {message}", fg="green")


def error(message: str) -> None:
    """Print an error message in red."""
    click.secho(f"✗ {message}", fg="red", err=True)


def info(message: str) -> None:
    """Print an info message in blue."""
    click.secho(f"ℹ {message}", fg="blue")


def header(message: str) -> None:
    """Print a header message in cyan bold."""
    click.secho(f"\n{message}", fg="cyan", bold=True)


def tree_lines(forest: list[dict[str, Any]], indent: int = 0) -> list[str]:
    """Render a lean forest as indented ``id  name`` lines, depth first."""
    lines = []
    for node in forest:
        lines.append(f"{'  ' * indent}{node['id']}  {node.get('name', '')}".rstrip())
        lines.extend(tree_lines(node.get("children") or [], indent + 1))
    return lines
