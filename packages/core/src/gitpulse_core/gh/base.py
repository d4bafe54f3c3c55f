"""Review-platform capability: open a pull request and merge it.

Calls never raise for platform-side refusals (branch protection, failing
checks, missing permissions); they return a PlatformResult with ok=False and
whatever the platform said, so the orchestrator can pick the next strategy.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

_HASH_ID_RE = re.compile(r"#(\d+)")
_PULL_URL_RE = re.compile(r"/pull/(\d+)")


@dataclass
class PlatformResult:
    ok: bool
    output: str = ""
    request_id: int | None = None


def parse_request_id(output: str) -> int | None:
    """Extract a pull request number from platform output.

    Accepts "#123" anywhere in the text, or the ".../pull/123" URL that
    `gh pr create` prints.
    """
    match = _HASH_ID_RE.search(output or "") or _PULL_URL_RE.search(output or "")
    return int(match.group(1)) if match else None


class ReviewPlatform(ABC):
    @abstractmethod
    def create_request(self, title: str, body: str, base: str, head: str) -> PlatformResult:
        """Open a pull request from `head` into `base`."""

    @abstractmethod
    def merge(self, ref: int | str, delete_branch: bool = True, auto: bool = False) -> PlatformResult:
        """Merge a pull request (by number, or by head branch name) with a merge commit.

        With auto=True, ask the platform to merge once its requirements are
        met instead of merging immediately.
        """
