"""ReviewPlatform backed by the GitHub CLI (`gh`).

gh picks up GITHUB_TOKEN / GH_TOKEN from the environment, so no credentials
are passed on the command line.
"""

from __future__ import annotations

import logging
import subprocess

from gitpulse_core.gh.base import PlatformResult, ReviewPlatform, parse_request_id

logger = logging.getLogger(__name__)


class GhCommandPlatform(ReviewPlatform):
    def __init__(self, cwd: str | None = None, executable: str = "gh"):
        self.cwd = cwd
        self.executable = executable

    def _run(self, args: list[str]) -> PlatformResult:
        cmd = [self.executable, *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, cwd=self.cwd)
        except (FileNotFoundError, PermissionError) as e:
            return PlatformResult(ok=False, output=f"{self.executable} could not be executed: {e}")

        output = "\n".join(part.strip() for part in (result.stdout, result.stderr) if part and part.strip())
        return PlatformResult(ok=result.returncode == 0, output=output)

    def create_request(self, title: str, body: str, base: str, head: str) -> PlatformResult:
        result = self._run(["pr", "create", "--base", base, "--head", head, "--title", title, "--body", body])
        if result.ok:
            result.request_id = parse_request_id(result.output)
        return result

    def merge(self, ref: int | str, delete_branch: bool = True, auto: bool = False) -> PlatformResult:
        args = ["pr", "merge", str(ref), "--merge"]
        if delete_branch:
            args.append("--delete-branch")
        if auto:
            args.append("--auto")
        return self._run(args)
