"""CLI entry point for prmentor.

Commands:
  review   — run AI review on a pull request, locally or from a GitHub Actions event
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.logging import RichHandler

from prmentor_cli.commands.review import review_cmd


@click.group()
@click.version_option(
    version=importlib.metadata.version("prmentor"),
    prog_name="prmentor",
)
@click.option(
    "--config",
    "config_path",
    default=".prmentor.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRMENTOR_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging (dropped comments, skipped files).")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """AI mentor that reviews student pull requests with inline comments."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(review_cmd)
