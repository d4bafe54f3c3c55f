"""run command: one single-shot activity run."""

from __future__ import annotations

import click
from rich.console import Console

from gitpulse_core.runner import make_clock, run_once

console = Console()


def _build_platform(config: dict, git):
    """Instantiate the configured review platform from .gitpulse.yml settings.

    Platform selection:
      platform: gh  → GhCommandPlatform (default; shells out to the GitHub CLI)
      platform: api → GithubRestPlatform (PyGithub; needs `repo` or a GitHub remote)
    """
    if config.get("platform") == "api":
        from gitpulse_core.gh.rest import GithubRestPlatform, repo_slug_from_url

        repo_name = config.get("repo") or repo_slug_from_url(git.remote_url(config["remote"]))
        if not repo_name:
            raise click.UsageError("platform: api needs the repository slug. Set 'repo: owner/name' in .gitpulse.yml.")
        return GithubRestPlatform(repo_name=repo_name, token=config["github_token"])

    from gitpulse_core.gh.command import GhCommandPlatform

    return GhCommandPlatform(cwd=git.working_dir)


@click.command("run")
@click.pass_context
def run_cmd(ctx):
    """Create a branch, commit, open a PR and merge it, if today's quota allows.

    \b
    Required environment variables:
      GITHUB_TOKEN or GH_TOKEN   GitHub token used by gh / the REST API
    \b
    Optional:
      GITHUB_ACTIONS=true        Trusted scheduler: skip the local lock and stash restore
    """
    from gitpulse_cli.auth import is_trusted_automation, resolve_github_token
    from gitpulse_core.config import state_path
    from gitpulse_core.git.base import VcsError
    from gitpulse_core.git.repo import GitRepoClient
    from gitpulse_store.activity_log import ActivityLog
    from gitpulse_store.json_file import JsonFileStore

    config = ctx.obj["config"]

    # Checked before anything touches the repository or the state files.
    token = resolve_github_token()
    if not token:
        raise click.UsageError("No GitHub token found. Set GITHUB_TOKEN or GH_TOKEN.")
    config["github_token"] = token
    config["trusted_automation"] = is_trusted_automation()

    try:
        git = GitRepoClient(config["repo_path"])
    except VcsError as e:
        raise click.UsageError(str(e))
    config["repo_path"] = git.working_dir

    platform = _build_platform(config, git)
    clock = make_clock(config["timezone"])
    store = JsonFileStore(state_path(config, "tracking_file"))
    activity_log = ActivityLog(state_path(config, "log_file"), clock=clock)

    try:
        summary = run_once(config, git, platform, store, activity_log, clock=clock)
    finally:
        store.close()

    if summary.failed:
        console.print(f"[red]Run failed: {summary.status}[/red]")
        ctx.exit(1)
