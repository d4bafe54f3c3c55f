"""status command: show today's quota and recent activity."""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()
logger = logging.getLogger(__name__)

_LEVEL_STYLE = {"INFO": "white", "WARNING": "yellow", "ERROR": "red"}


@click.command("status")
@click.option("--limit", default=10, show_default=True, help="Number of activity log lines to show.")
@click.pass_context
def status_cmd(ctx, limit: int):
    """Show the tracked quota and the tail of the activity log.

    Read-only: needs no token and never touches the working tree.
    """
    from gitpulse_core.config import state_path
    from gitpulse_core.git.base import VcsError
    from gitpulse_core.git.repo import GitRepoClient
    from gitpulse_store.activity_log import tail
    from gitpulse_store.json_file import JsonFileStore

    config = ctx.obj["config"]
    try:
        config["repo_path"] = GitRepoClient(config["repo_path"]).working_dir
    except VcsError as e:
        # state_dir may still point somewhere readable
        logger.debug("Could not locate repository: %s", e)

    state = JsonFileStore(state_path(config, "tracking_file")).load()
    if state is None:
        console.print("[yellow]No tracking state yet. Run `gitpulse` first.[/yellow]")
    else:
        table = Table(title="Daily quota", show_header=True, header_style="bold cyan")
        table.add_column("Date", width=12)
        table.add_column("Done", justify="right", width=6)
        table.add_column("Target", justify="right", width=8)
        table.add_column("Remaining", justify="right", width=10)
        table.add_column("Last action", width=26)
        table.add_row(
            state.date,
            str(state.consumed_count),
            str(state.target_count),
            str(state.remaining),
            state.last_action_at or "—",
        )
        console.print(table)

    lines = tail(state_path(config, "log_file"), limit=limit)
    if not lines:
        console.print("[dim]Activity log is empty.[/dim]")
        return

    console.print("\n[bold]Recent activity[/bold]")
    for line in lines:
        level = line.split("] ", 1)[-1].split(":", 1)[0]
        style = _LEVEL_STYLE.get(level, "white")
        console.print(f"[{style}]{escape(line)}[/{style}]", highlight=False)
