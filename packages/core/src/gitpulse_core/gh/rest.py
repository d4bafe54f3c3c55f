"""ReviewPlatform backed by the GitHub REST API through PyGithub."""

from __future__ import annotations

import logging

import requests
from github import Auth, Github, GithubException

from gitpulse_core.gh.base import PlatformResult, ReviewPlatform

logger = logging.getLogger(__name__)


def repo_slug_from_url(url: str | None) -> str | None:
    """Turn a GitHub remote URL into "owner/name".

    Handles both HTTPS and SSH remotes:
      https://github.com/owner/repo.git  →  owner/repo
      git@github.com:owner/repo.git      →  owner/repo
    """
    if not url or "github.com" not in url:
        return None
    slug = url.split("github.com")[-1].lstrip("/:").removesuffix(".git")
    return slug if "/" in slug else None


def get_repo(repo_name: str, token: str):
    return Github(auth=Auth.Token(token)).get_repo(repo_name)


class GithubRestPlatform(ReviewPlatform):
    def __init__(self, repo_name: str, token: str, repo_obj=None):
        self.repo_name = repo_name
        self._repo = repo_obj if repo_obj is not None else get_repo(repo_name, token)

    def _get_pull(self, ref: int | str):
        if isinstance(ref, int):
            return self._repo.get_pull(ref)
        owner = self.repo_name.split("/", 1)[0]
        pulls = list(self._repo.get_pulls(state="open", head=f"{owner}:{ref}"))
        if not pulls:
            raise LookupError(f"No open pull request for branch {ref!r}")
        return pulls[0]

    def create_request(self, title: str, body: str, base: str, head: str) -> PlatformResult:
        try:
            pr = self._repo.create_pull(base=base, head=head, title=title, body=body)
        except GithubException as e:
            return PlatformResult(ok=False, output=f"{e.status}: {e.data}")
        except requests.RequestException as e:
            return PlatformResult(ok=False, output=f"GitHub API unreachable: {e}")
        return PlatformResult(ok=True, output=pr.html_url, request_id=pr.number)

    def merge(self, ref: int | str, delete_branch: bool = True, auto: bool = False) -> PlatformResult:
        try:
            pr = self._get_pull(ref)
            if auto:
                pr.enable_automerge(merge_method="MERGE")
                return PlatformResult(ok=True, output=f"Auto-merge enabled for #{pr.number}", request_id=pr.number)

            status = pr.merge(merge_method="merge")
            if not status.merged:
                return PlatformResult(ok=False, output=status.message or "merge refused", request_id=pr.number)
        except (GithubException, requests.RequestException, LookupError) as e:
            return PlatformResult(ok=False, output=str(e))

        if delete_branch:
            try:
                self._repo.get_git_ref(f"heads/{pr.head.ref}").delete()
            except (GithubException, requests.RequestException) as e:
                # The merge itself succeeded; a leftover remote branch is cleaned up later.
                logger.warning("Merged #%d but could not delete %s: %s", pr.number, pr.head.ref, e)
        return PlatformResult(ok=True, output=f"Merged #{pr.number}", request_id=pr.number)
