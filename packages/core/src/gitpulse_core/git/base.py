"""Version-control capability consumed by the branch lifecycle and review flow.

Implementations raise VcsError (never a library-specific exception) so the
state machine can be exercised against a stub and backed by either a library
binding or a subprocess wrapper.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class VcsError(Exception):
    """A version-control operation failed."""


class GitSyncError(VcsError):
    """The base branch could not be brought in line with the remote."""


@dataclass
class WorkingTreeStatus:
    staged: list[str] = field(default_factory=list)
    unstaged: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)

    @property
    def files(self) -> list[str]:
        seen: dict[str, None] = {}
        for path in (*self.staged, *self.unstaged, *self.untracked):
            seen.setdefault(path, None)
        return list(seen)

    @property
    def is_clean(self) -> bool:
        return not self.files


class VersionControlClient(ABC):
    @abstractmethod
    def current_branch(self) -> str: ...

    @abstractmethod
    def fetch(self, remote: str) -> None: ...

    @abstractmethod
    def hard_reset(self, ref: str) -> None: ...

    @abstractmethod
    def status(self) -> WorkingTreeStatus: ...

    @abstractmethod
    def stash_push(self, message: str, include_untracked: bool = True) -> None: ...

    @abstractmethod
    def stash_pop(self) -> None: ...

    @abstractmethod
    def stash_list(self) -> list[str]: ...

    @abstractmethod
    def checkout(self, branch: str) -> None: ...

    @abstractmethod
    def create_branch(self, branch: str, start_point: str | None = None) -> None:
        """Create `branch` (from `start_point`, default HEAD) and switch to it."""

    @abstractmethod
    def add(self, paths: list[str]) -> None: ...

    @abstractmethod
    def commit(self, message: str) -> None: ...

    @abstractmethod
    def push(self, remote: str, branch: str, force: bool = False, set_upstream: bool = False) -> None: ...

    @abstractmethod
    def merge(self, branch: str, message: str | None = None, no_ff: bool = True) -> None: ...

    @abstractmethod
    def merge_abort(self) -> None: ...

    @abstractmethod
    def delete_branch(self, branch: str, force: bool = True) -> None: ...

    @abstractmethod
    def delete_remote_branch(self, remote: str, branch: str) -> None: ...

    @abstractmethod
    def remote_url(self, remote: str) -> str | None: ...

    @property
    @abstractmethod
    def working_dir(self) -> str: ...
