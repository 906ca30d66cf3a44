"""Main CLI entry point for pathtree commands."""

import click

from pathtree.cli.commands import tree
from pathtree.infra.logging.config import setup_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="pathtree")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """pathtree CLI - Manage a materialized-path category tree.

    \b
    Quick Start:
      pathtree tree init
      pathtree tree add Electronics
      pathtree tree add Laptops --parent electronics
      pathtree tree show
    """
    ctx.ensure_object(dict)


cli.add_command(tree.tree)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
