"""One invocation, end to end.

lock → quota gate → sync base → work branch → commit/push → review flow,
with the activity log flushed and the lock released no matter how the run
ends.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable
from zoneinfo import ZoneInfo

from rich.console import Console

from gitpulse_core.activities import choose_activity, load_catalog
from gitpulse_core.branches import BranchLifecycleController
from gitpulse_core.config import state_path
from gitpulse_core.git.base import GitSyncError, VcsError
from gitpulse_core.lock import LockManager
from gitpulse_core.quota import DailyQuotaTracker, QuotaBounds
from gitpulse_core.review import ReviewOrchestrator

if TYPE_CHECKING:
    from gitpulse_core.branches import BranchHandle
    from gitpulse_core.gh.base import ReviewPlatform
    from gitpulse_core.git.base import VersionControlClient
    from gitpulse_core.review import ReviewRequest
    from gitpulse_store.activity_log import ActivityLog
    from gitpulse_store.base import BaseStateStore
    from gitpulse_store.models import QuotaState

console = Console()
logger = logging.getLogger(__name__)

LOCKED = "locked"
QUOTA_REACHED = "quota_reached"
SYNC_FAILED = "sync_failed"
COMMIT_FAILED = "commit_failed"
COMPLETED = "completed"

FAILED_STATUSES = (SYNC_FAILED, COMMIT_FAILED)


@dataclass
class RunSummary:
    """Result returned by run_once, enough for the CLI to report and pick an exit code."""

    status: str
    quota: QuotaState | None = None
    branch: BranchHandle | None = None
    request: ReviewRequest | None = None

    @property
    def failed(self) -> bool:
        return self.status in FAILED_STATUSES


def make_clock(tz_name: str) -> Callable[[], datetime]:
    """Return a clock reading wall time in the configured (fixed) time zone."""
    tz = ZoneInfo(tz_name)
    return lambda: datetime.now(tz)


def run_once(
    config: dict,
    git: VersionControlClient,
    platform: ReviewPlatform,
    store: BaseStateStore,
    activity_log: ActivityLog,
    rng: random.Random | None = None,
    clock: Callable[[], datetime] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    lock: LockManager | None = None,
) -> RunSummary:
    """Run the whole activity pipeline once and return a RunSummary.

    Lock contention and a spent quota are normal outcomes, not errors. Sync
    and commit failures are logged and reported through the summary status;
    review-platform failures are recovered inside the orchestrator.
    """
    rng = rng or random.Random()
    clock = clock or make_clock(config.get("timezone", "UTC"))
    trusted = bool(config.get("trusted_automation"))

    if trusted:
        # The scheduler already guarantees one run at a time.
        lock = None
    elif lock is None:
        lock = LockManager(state_path(config, "lock_file"), stale_after=config.get("lock_stale_seconds", 300))

    if lock is not None and not lock.acquire():
        console.print("[dim]Another run holds the lock; skipping.[/dim]")
        return RunSummary(status=LOCKED)

    controller = BranchLifecycleController(
        git,
        activity_log,
        base_branch=config["base_branch"],
        remote=config["remote"],
        daily_file=config["daily_file"],
        branch_prefix=config["branch_prefix"],
        trusted_automation=trusted,
        stash_settle_seconds=config.get("stash_settle_seconds", 1),
        clock=clock,
        sleep=sleep,
    )

    try:
        tracker = DailyQuotaTracker(
            store,
            activity_log,
            bounds=QuotaBounds(int(config["daily_min"]), int(config["daily_max"])),
            rng=rng,
            clock=clock,
        )
        if not tracker.should_act_now():
            state = tracker.last_state
            console.print(f"[yellow]Daily quota reached ({state.consumed_count}/{state.target_count}).[/yellow]")
            return RunSummary(status=QUOTA_REACHED, quota=state)

        quota = tracker.last_state
        plan = choose_activity(rng, load_catalog(config))
        activity_log.info(f"Activity {quota.consumed_count}/{quota.target_count}: {plan.label}")

        try:
            controller.ensure_on_main_synced_with_remote()
        except GitSyncError as e:
            activity_log.error(f"Sync failed, aborting run: {e}")
            return RunSummary(status=SYNC_FAILED, quota=quota)

        orchestrator = ReviewOrchestrator(
            platform,
            controller,
            activity_log,
            merge_delay_seconds=config.get("merge_delay_seconds", 5),
            sleep=sleep,
        )

        try:
            branch = controller.create_work_branch(plan.label)
        except VcsError as e:
            activity_log.error(f"Could not create work branch: {e}")
            return RunSummary(status=COMMIT_FAILED, quota=quota)

        if not controller.record_and_commit(branch, plan):
            orchestrator.cleanup_branch(branch, delete_remote=False)
            return RunSummary(status=COMMIT_FAILED, quota=quota, branch=branch)

        request = orchestrator.run(branch, plan)
        console.print(f"[green]Run finished: {request.outcome.value} ({branch.name})[/green]")
        return RunSummary(status=COMPLETED, quota=quota, branch=branch, request=request)
    finally:
        try:
            controller.restore_stash_if_any()
            try:
                activity_log.flush()
            except OSError as e:
                logger.error("Could not write activity log %s: %s", activity_log.path, e)
        finally:
            if lock is not None:
                lock.release()
