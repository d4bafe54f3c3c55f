"""Branch lifecycle: sync the base branch, cut a work branch, commit, push.

Every checkout goes through safe_switch_branch(), which stashes anything the
working tree reports (staged, unstaged or untracked) before switching. Stashes
taken here are counted so restore_stash_if_any() only pops entries this run
created.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from gitpulse_core.activities import slugify
from gitpulse_core.git.base import GitSyncError, VcsError

if TYPE_CHECKING:
    from gitpulse_core.activities import ActivityPlan
    from gitpulse_core.git.base import VersionControlClient
    from gitpulse_store.activity_log import ActivityLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BranchHandle:
    name: str
    base_branch: str
    created_at: datetime


def branch_name(prefix: str, label: str, when: datetime) -> str:
    return f"{prefix}/{slugify(label)}-{when:%Y%m%d-%H%M%S}"


class BranchLifecycleController:
    def __init__(
        self,
        git: VersionControlClient,
        activity_log: ActivityLog,
        base_branch: str = "main",
        remote: str = "origin",
        daily_file: str = "daily_update.txt",
        branch_prefix: str = "auto",
        trusted_automation: bool = False,
        stash_settle_seconds: float = 1,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.git = git
        self.activity_log = activity_log
        self.base_branch = base_branch
        self.remote = remote
        self.daily_file = daily_file
        self.branch_prefix = branch_prefix
        self.trusted_automation = trusted_automation
        self.stash_settle_seconds = stash_settle_seconds
        self._clock = clock or datetime.now
        self._sleep = sleep
        self._stash_depth = 0

    @property
    def stash_depth(self) -> int:
        """Number of stash entries created by this run and not yet restored."""
        return self._stash_depth

    # ------------------------------------------------------------------ #
    # Working-tree safety                                                  #
    # ------------------------------------------------------------------ #

    def _stash_if_dirty(self, reason: str) -> bool:
        status = self.git.status()
        if status.is_clean:
            return False
        self.activity_log.info(f"Stashing {len(status.files)} uncommitted file(s) before {reason}")
        self.git.stash_push(
            message=f"gitpulse-auto {self._clock():%Y-%m-%dT%H:%M:%S}",
            include_untracked=True,
        )
        self._stash_depth += 1
        if self.stash_settle_seconds:
            self._sleep(self.stash_settle_seconds)
        return True

    def safe_switch_branch(self, target: str) -> None:
        """Check out `target`, stashing any uncommitted changes first.

        Raises VcsError if the stash or the checkout fails; the checkout is
        never attempted when stashing a dirty tree failed.
        """
        self._stash_if_dirty(f"switching to {target}")
        self.git.checkout(target)
        logger.debug("Switched to %s", target)

    def restore_stash_if_any(self) -> bool:
        """Pop the stash entries saved during this run. Returns True if anything was restored.

        A no-op in the trusted automated environment, where every run starts
        from a fresh checkout.
        """
        if self.trusted_automation or not self._stash_depth:
            return False

        restored = False
        while self._stash_depth:
            try:
                if not self.git.stash_list():
                    self._stash_depth = 0
                    break
                self.git.stash_pop()
            except VcsError as e:
                # A conflicting pop leaves the entry on the stash; nothing is lost.
                self.activity_log.warning(f"Could not restore stashed changes (kept in stash): {e}")
                self._stash_depth = 0
                break
            self._stash_depth -= 1
            restored = True

        if restored:
            self.activity_log.info("Restored stashed changes")
        return restored

    # ------------------------------------------------------------------ #
    # Base branch                                                          #
    # ------------------------------------------------------------------ #

    def sync_base(self) -> None:
        """Fetch and hard-reset the base branch to the remote's copy."""
        try:
            self.git.fetch(self.remote)
            self.git.hard_reset(f"{self.remote}/{self.base_branch}")
        except VcsError as e:
            raise GitSyncError(f"Could not sync {self.base_branch} with {self.remote}: {e}") from e

    def ensure_on_main_synced_with_remote(self) -> None:
        """Move to the base branch and make it match the remote exactly.

        Local divergence on the base branch is discarded; uncommitted work is
        stashed first. Raises GitSyncError on any failure.
        """
        try:
            if self.git.current_branch() != self.base_branch:
                self.safe_switch_branch(self.base_branch)
            else:
                self._stash_if_dirty(f"syncing {self.base_branch}")
        except GitSyncError:
            raise
        except VcsError as e:
            raise GitSyncError(f"Could not switch to {self.base_branch}: {e}") from e

        self.sync_base()
        self.activity_log.info(f"Synced {self.base_branch} with {self.remote}/{self.base_branch}")

    # ------------------------------------------------------------------ #
    # Work branch                                                          #
    # ------------------------------------------------------------------ #

    def create_work_branch(self, activity_label: str) -> BranchHandle:
        now = self._clock()
        handle = BranchHandle(
            name=branch_name(self.branch_prefix, activity_label, now),
            base_branch=self.base_branch,
            created_at=now,
        )
        self.git.create_branch(handle.name, start_point=self.base_branch)
        self.activity_log.info(f"Created branch {handle.name}")
        return handle

    def record_and_commit(self, branch: BranchHandle, plan: ActivityPlan) -> bool:
        """Append the activity to the tracked file, commit it and push the branch.

        Returns False (after logging an ERROR) if any step fails.
        """
        stamp = self._clock().isoformat(timespec="seconds")
        lines = [f"{stamp} - {plan.label}"]
        lines += [f"{stamp}   progress: {step}" for step in plan.progress_lines]

        try:
            path = Path(self.git.working_dir) / self.daily_file
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write("\n".join(lines) + "\n")

            self.git.add([self.daily_file])
            self.git.commit(plan.commit_message)
            # Branch names are unique per run, so forcing only ever creates.
            self.git.push(self.remote, branch.name, force=True, set_upstream=True)
        except (OSError, VcsError) as e:
            self.activity_log.error(f"Commit/push failed on {branch.name}: {e}")
            self._discard_partial_commit(branch)
            return False

        self.activity_log.info(
            f"Committed '{plan.commit_message}' on {branch.name} "
            f"({len(plan.progress_lines)} progress line(s)) and pushed"
        )
        return True

    def _discard_partial_commit(self, branch: BranchHandle) -> None:
        # Drop the half-written activity lines so the cleanup switch has
        # nothing of ours to stash and carry back onto the base branch.
        try:
            self.git.hard_reset("HEAD")
        except VcsError as e:
            self.activity_log.warning(f"Could not reset {branch.name} after failed commit: {e}")
