"""Pull request orchestration for a pushed work branch.

    BranchPushed → request_creation ─┬─ failed ───────────────────────────────→ cleanup (PR_FAILED)
                                     └─ created → attempt_auto_merge ─┬─ merged/queued → cleanup
                                                                      └─ refused → attempt_manual_merge
                                                                                   ├─ pushed → cleanup (MANUALLY_MERGED)
                                                                                   └─ failed → cleanup (MANUAL_MERGE_FAILED)

Platform refusals are routine (branch protection, required checks), so nothing
here raises: every failure is written to the activity log and the flow moves
to the next strategy. Every exit goes through cleanup_branch(), which is safe
to run any number of times.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from gitpulse_core.git.base import VcsError

if TYPE_CHECKING:
    from gitpulse_core.activities import ActivityPlan
    from gitpulse_core.branches import BranchHandle, BranchLifecycleController
    from gitpulse_core.gh.base import ReviewPlatform
    from gitpulse_store.activity_log import ActivityLog

logger = logging.getLogger(__name__)


class ReviewState(str, enum.Enum):
    CREATED = "created"
    MERGE_ATTEMPTED = "merge_attempted"
    MANUALLY_MERGED = "manually_merged"
    ABANDONED = "abandoned"


class ReviewOutcome(str, enum.Enum):
    PR_FAILED = "pr_failed"
    MERGED = "merged"
    AUTO_MERGE_QUEUED = "auto_merge_queued"
    MANUALLY_MERGED = "manually_merged"
    MANUAL_MERGE_FAILED = "manual_merge_failed"


@dataclass
class ReviewRequest:
    branch: BranchHandle
    title: str
    body: str
    state: ReviewState = ReviewState.CREATED
    request_id: int | None = None
    outcome: ReviewOutcome | None = None

    @property
    def ref(self) -> int | str:
        """What to hand the platform when referring to this request."""
        return self.request_id if self.request_id is not None else self.branch.name


def build_body(plan: ActivityPlan) -> str:
    lines = [f"Automated activity: {plan.label}", ""]
    lines += [f"- {step}" for step in plan.progress_lines] or ["- routine update"]
    return "\n".join(lines)


class ReviewOrchestrator:
    def __init__(
        self,
        platform: ReviewPlatform,
        controller: BranchLifecycleController,
        activity_log: ActivityLog,
        merge_delay_seconds: float = 5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.platform = platform
        self.controller = controller
        self.git = controller.git
        self.activity_log = activity_log
        self.merge_delay_seconds = merge_delay_seconds
        self._sleep = sleep

    def run(self, branch: BranchHandle, plan: ActivityPlan) -> ReviewRequest:
        """Drive one pushed branch through PR creation, merge and cleanup."""
        request = self.request_creation(branch, plan.commit_message, build_body(plan))
        if request.state is ReviewState.ABANDONED:
            return request

        if self.attempt_auto_merge(request):
            return request

        self.attempt_manual_merge(request)
        return request

    # ------------------------------------------------------------------ #
    # States                                                               #
    # ------------------------------------------------------------------ #

    def request_creation(self, branch: BranchHandle, title: str, body: str) -> ReviewRequest:
        request = ReviewRequest(branch=branch, title=title, body=body)
        result = self.platform.create_request(title=title, body=body, base=branch.base_branch, head=branch.name)

        if not result.ok:
            self.activity_log.error(f"PR creation failed for {branch.name}: {result.output or 'no output'}")
            request.state = ReviewState.ABANDONED
            request.outcome = ReviewOutcome.PR_FAILED
            self.cleanup_branch(branch, delete_remote=True)
            return request

        request.request_id = result.request_id
        if request.request_id is not None:
            self.activity_log.info(f"PR created: #{request.request_id} ({branch.name})")
        else:
            self.activity_log.warning(f"PR created for {branch.name} but no PR number found in output")
        return request

    def attempt_auto_merge(self, request: ReviewRequest) -> bool:
        """Merge through the platform. Returns True if the flow is finished.

        Tries an immediate merge first, then the platform's auto-merge flag.
        """
        if self.merge_delay_seconds:
            # Give the platform a moment to finish computing mergeability.
            self._sleep(self.merge_delay_seconds)

        request.state = ReviewState.MERGE_ATTEMPTED
        result = self.platform.merge(request.ref, delete_branch=True)
        if result.ok:
            self.activity_log.info(f"PR {self._label(request)} merged and remote branch deleted")
            request.outcome = ReviewOutcome.MERGED
            self.cleanup_branch(request.branch, delete_remote=False)
            return True
        self.activity_log.warning(f"Direct merge of {self._label(request)} failed: {result.output or 'no output'}")

        result = self.platform.merge(request.ref, delete_branch=True, auto=True)
        if result.ok:
            self.activity_log.info(f"Auto-merge enabled for {self._label(request)}")
            request.outcome = ReviewOutcome.AUTO_MERGE_QUEUED
            # The remote branch is the PR head; the platform deletes it on merge.
            self.cleanup_branch(request.branch, delete_remote=False)
            return True
        self.activity_log.warning(f"Auto-merge of {self._label(request)} failed: {result.output or 'no output'}")
        return False

    def attempt_manual_merge(self, request: ReviewRequest) -> bool:
        """Merge the work branch into base locally and push base."""
        branch = request.branch
        self.activity_log.info(f"Falling back to manual merge of {branch.name}")
        merging = False
        try:
            self.controller.safe_switch_branch(branch.base_branch)
            self.controller.sync_base()
            merging = True
            self.git.merge(branch.name, message=f"Merge branch '{branch.name}'", no_ff=True)
            merging = False
            self.git.push(self.controller.remote, branch.base_branch)
        except VcsError as e:
            self.activity_log.error(f"Manual merge of {branch.name} failed: {e}")
            if merging:
                self._abort_merge()
            request.outcome = ReviewOutcome.MANUAL_MERGE_FAILED
            self.cleanup_branch(branch, delete_remote=True)
            return False

        self.activity_log.info(f"Manually merged {branch.name} into {branch.base_branch} and pushed")
        request.state = ReviewState.MANUALLY_MERGED
        request.outcome = ReviewOutcome.MANUALLY_MERGED
        self.cleanup_branch(branch, delete_remote=True)
        return True

    def cleanup_branch(self, branch: BranchHandle, delete_remote: bool = True) -> None:
        """Return to base, delete the work branch, restore stashed changes. Never raises."""
        try:
            if self.git.current_branch() != branch.base_branch:
                self.controller.safe_switch_branch(branch.base_branch)
        except VcsError as e:
            self.activity_log.error(f"Could not return to {branch.base_branch} during cleanup: {e}")

        try:
            self.git.delete_branch(branch.name, force=True)
            self.activity_log.info(f"Deleted local branch {branch.name}")
        except VcsError as e:
            # Already gone (e.g. deleted by the platform's merge) is fine.
            self.activity_log.warning(f"Could not delete local branch {branch.name}: {e}")

        if delete_remote:
            try:
                self.git.delete_remote_branch(self.controller.remote, branch.name)
                self.activity_log.info(f"Deleted remote branch {branch.name}")
            except VcsError as e:
                self.activity_log.warning(f"Could not delete remote branch {branch.name}: {e}")

        self.controller.restore_stash_if_any()

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    def _abort_merge(self) -> None:
        try:
            self.git.merge_abort()
        except VcsError as e:
            logger.debug("merge --abort failed: %s", e)

    @staticmethod
    def _label(request: ReviewRequest) -> str:
        return f"#{request.request_id}" if request.request_id is not None else request.branch.name
