"""GitPython-backed VersionControlClient."""

from __future__ import annotations

import logging

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from gitpulse_core.git.base import VcsError, VersionControlClient, WorkingTreeStatus

logger = logging.getLogger(__name__)


def parse_porcelain(output: str) -> WorkingTreeStatus:
    """Parse `git status --porcelain` (v1) output into staged/unstaged/untracked lists."""
    status = WorkingTreeStatus()
    for line in output.splitlines():
        if len(line) < 4:
            continue
        x, y, path = line[0], line[1], line[3:]
        # Renames are reported as "old -> new"; the new path is what's in the tree.
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        path = path.strip('"')
        if x == "?" and y == "?":
            status.untracked.append(path)
            continue
        if x == "!":
            continue
        if x != " ":
            status.staged.append(path)
        if y != " ":
            status.unstaged.append(path)
    return status


class GitRepoClient(VersionControlClient):
    def __init__(self, path: str = "."):
        try:
            self.repo = Repo(path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise VcsError(f"Not a git repository: {path}") from e

    @property
    def working_dir(self) -> str:
        return str(self.repo.working_tree_dir)

    def _git(self, *args: str) -> str:
        logger.debug("git %s", " ".join(args))
        try:
            return self.repo.git.execute(["git", *args])
        except GitCommandError as e:
            stderr = (e.stderr or "").strip()
            raise VcsError(f"git {' '.join(args)} failed: {stderr or e}") from e

    def current_branch(self) -> str:
        return self._git("rev-parse", "--abbrev-ref", "HEAD").strip()

    def fetch(self, remote: str) -> None:
        self._git("fetch", remote)

    def hard_reset(self, ref: str) -> None:
        self._git("reset", "--hard", ref)

    def status(self) -> WorkingTreeStatus:
        return parse_porcelain(self._git("status", "--porcelain"))

    def stash_push(self, message: str, include_untracked: bool = True) -> None:
        args = ["stash", "push", "-m", message]
        if include_untracked:
            args.append("--include-untracked")
        self._git(*args)

    def stash_pop(self) -> None:
        self._git("stash", "pop")

    def stash_list(self) -> list[str]:
        return [line for line in self._git("stash", "list").splitlines() if line.strip()]

    def checkout(self, branch: str) -> None:
        self._git("checkout", branch)

    def create_branch(self, branch: str, start_point: str | None = None) -> None:
        args = ["checkout", "-b", branch]
        if start_point:
            args.append(start_point)
        self._git(*args)

    def add(self, paths: list[str]) -> None:
        self._git("add", "--", *paths)

    def commit(self, message: str) -> None:
        self._git("commit", "-m", message)

    def push(self, remote: str, branch: str, force: bool = False, set_upstream: bool = False) -> None:
        args = ["push"]
        if force:
            args.append("--force")
        if set_upstream:
            args.append("--set-upstream")
        self._git(*args, remote, branch)

    def merge(self, branch: str, message: str | None = None, no_ff: bool = True) -> None:
        args = ["merge"]
        if no_ff:
            args.append("--no-ff")
        if message:
            args += ["-m", message]
        self._git(*args, branch)

    def merge_abort(self) -> None:
        self._git("merge", "--abort")

    def delete_branch(self, branch: str, force: bool = True) -> None:
        self._git("branch", "-D" if force else "-d", branch)

    def delete_remote_branch(self, remote: str, branch: str) -> None:
        self._git("push", remote, "--delete", branch)

    def remote_url(self, remote: str) -> str | None:
        try:
            return self._git("remote", "get-url", remote).strip() or None
        except VcsError:
            return None
