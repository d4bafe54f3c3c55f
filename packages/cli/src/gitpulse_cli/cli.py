"""CLI entry point for gitpulse.

Commands:
  run     one single-shot activity run (the default when no command is given)
  status  show today's quota and the most recent activity log entries
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from gitpulse_cli.commands.run import run_cmd
from gitpulse_cli.commands.status import status_cmd

console = Console()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@click.group(invoke_without_command=True)
@click.version_option(
    version=importlib.metadata.version("gitpulse"),
    prog_name="gitpulse",
)
@click.option(
    "--config",
    "config_path",
    default=".gitpulse.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="GITPULSE_CONFIG",
)
@click.pass_context
def main(ctx: click.Context, config_path: str):
    """Keep a repository's activity graph busy with branch → PR → merge cycles."""
    from gitpulse_core.config import load_config

    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.UsageError(str(e))

    _configure_logging(config.get("log_level", "INFO"))
    ctx.obj["config"] = config

    # Bare `gitpulse` is what the scheduler calls.
    if ctx.invoked_subcommand is None:
        ctx.invoke(run_cmd)


main.add_command(run_cmd)
main.add_command(status_cmd)
