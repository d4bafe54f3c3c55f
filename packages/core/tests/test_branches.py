"""Tests for the branch lifecycle controller."""

import re
from datetime import datetime

import pytest
from fakes import fixed_clock

from gitpulse_core.activities import ActivityPlan
from gitpulse_core.branches import BranchHandle, BranchLifecycleController, branch_name
from gitpulse_core.git.base import GitSyncError, VcsError


def _controller(git, log, delays=None, **kwargs):
    return BranchLifecycleController(
        git,
        log,
        clock=fixed_clock,
        sleep=(delays.append if delays is not None else lambda s: None),
        **kwargs,
    )


def _handle(name="auto/fix-minor-bug-20261017-093005"):
    return BranchHandle(name=name, base_branch="main", created_at=fixed_clock())


PLAN = ActivityPlan(label="Fix minor bug", commit_message="fix: handle empty input", progress_lines=["drafted changes"])


# ---------------------------------------------------------------------------
# safe_switch_branch
# ---------------------------------------------------------------------------


class TestSafeSwitchBranch:
    def test_clean_tree_checks_out_without_stash(self, fake_git, activity_log):
        fake_git.branches.add("feature")
        _controller(fake_git, activity_log).safe_switch_branch("feature")

        assert "stash_push" not in fake_git.names()
        assert fake_git.branch == "feature"

    def test_dirty_tree_is_stashed_before_checkout(self, fake_git, activity_log, delays):
        fake_git.branches.add("feature")
        fake_git.dirty = ["notes.txt", "src/app.py"]
        controller = _controller(fake_git, activity_log, delays)

        controller.safe_switch_branch("feature")

        names = fake_git.names()
        assert names.index("stash_push") < names.index("checkout")
        checkout = next(c for c in fake_git.calls if c[0] == "checkout")
        assert checkout[2] == []  # nothing dirty at the moment of checkout
        assert controller.stash_depth == 1
        assert delays == [1]

    def test_stash_includes_untracked(self, fake_git, activity_log):
        fake_git.branches.add("feature")
        fake_git.dirty = ["new.txt"]
        _controller(fake_git, activity_log).safe_switch_branch("feature")
        assert ("stash_push", True) in fake_git.calls

    def test_never_checks_out_dirty_tree(self, fake_git, activity_log):
        """Whatever the sequence of switches, checkout always sees a clean tree."""
        fake_git.branches.update({"a", "b"})
        controller = _controller(fake_git, activity_log)
        for target, dirt in [("a", ["x"]), ("b", []), ("main", ["y", "z"]), ("a", ["w"])]:
            fake_git.dirty = list(dirt)
            controller.safe_switch_branch(target)

        assert all(c[2] == [] for c in fake_git.calls if c[0] == "checkout")
        assert controller.stash_depth == 3

    def test_stash_failure_prevents_checkout(self, fake_git, activity_log):
        fake_git.branches.add("feature")
        fake_git.dirty = ["notes.txt"]
        fake_git.fail_on.add("stash_push")

        with pytest.raises(VcsError):
            _controller(fake_git, activity_log).safe_switch_branch("feature")
        assert "checkout" not in fake_git.names()

    def test_logs_stash(self, fake_git, activity_log):
        fake_git.branches.add("feature")
        fake_git.dirty = ["notes.txt"]
        _controller(fake_git, activity_log).safe_switch_branch("feature")
        assert any("Stashing 1 uncommitted file(s)" in r.message for r in activity_log.records)


# ---------------------------------------------------------------------------
# restore_stash_if_any
# ---------------------------------------------------------------------------


class TestRestoreStash:
    def test_nothing_stashed_is_noop(self, fake_git, activity_log):
        assert _controller(fake_git, activity_log).restore_stash_if_any() is False
        assert "stash_pop" not in fake_git.names()

    def test_restores_stash_taken_this_run(self, fake_git, activity_log):
        fake_git.branches.add("feature")
        fake_git.dirty = ["notes.txt"]
        controller = _controller(fake_git, activity_log)
        controller.safe_switch_branch("feature")

        assert controller.restore_stash_if_any() is True
        assert fake_git.dirty == ["notes.txt"]
        assert controller.stash_depth == 0

    def test_does_not_pop_foreign_stash(self, fake_git, activity_log):
        fake_git.stash.append(["someone-elses.txt"])
        assert _controller(fake_git, activity_log).restore_stash_if_any() is False
        assert fake_git.stash == [["someone-elses.txt"]]

    def test_second_restore_is_noop(self, fake_git, activity_log):
        fake_git.branches.add("feature")
        fake_git.dirty = ["notes.txt"]
        controller = _controller(fake_git, activity_log)
        controller.safe_switch_branch("feature")
        controller.restore_stash_if_any()

        assert controller.restore_stash_if_any() is False
        assert fake_git.names().count("stash_pop") == 1

    def test_trusted_automation_skips_restore(self, fake_git, activity_log):
        fake_git.branches.add("feature")
        fake_git.dirty = ["notes.txt"]
        controller = _controller(fake_git, activity_log, trusted_automation=True)
        controller.safe_switch_branch("feature")

        assert controller.restore_stash_if_any() is False
        assert "stash_pop" not in fake_git.names()

    def test_failed_pop_is_warning_and_keeps_stash(self, fake_git, activity_log):
        fake_git.branches.add("feature")
        fake_git.dirty = ["notes.txt"]
        controller = _controller(fake_git, activity_log)
        controller.safe_switch_branch("feature")
        fake_git.fail_on.add("stash_pop")

        assert controller.restore_stash_if_any() is False
        assert len(fake_git.stash) == 1
        assert any(r.level == "WARNING" for r in activity_log.records)

    def test_empty_stash_list_resets_depth(self, fake_git, activity_log):
        fake_git.branches.add("feature")
        fake_git.dirty = ["notes.txt"]
        controller = _controller(fake_git, activity_log)
        controller.safe_switch_branch("feature")
        fake_git.stash.clear()  # dropped behind our back

        assert controller.restore_stash_if_any() is False
        assert controller.stash_depth == 0


# ---------------------------------------------------------------------------
# ensure_on_main_synced_with_remote
# ---------------------------------------------------------------------------


class TestEnsureOnMainSynced:
    def test_on_base_fetches_and_resets(self, fake_git, activity_log):
        _controller(fake_git, activity_log).ensure_on_main_synced_with_remote()

        assert ("fetch", "origin") in fake_git.calls
        assert ("hard_reset", "origin/main") in fake_git.calls
        assert "checkout" not in fake_git.names()

    def test_switches_to_base_first(self, fake_git, activity_log):
        fake_git.branch = "feature"
        fake_git.branches.add("feature")
        _controller(fake_git, activity_log).ensure_on_main_synced_with_remote()

        names = fake_git.names()
        assert names.index("checkout") < names.index("fetch") < names.index("hard_reset")
        assert fake_git.branch == "main"

    def test_uncommitted_work_on_base_is_stashed_before_reset(self, fake_git, activity_log):
        fake_git.dirty = ["wip.py"]
        controller = _controller(fake_git, activity_log)
        controller.ensure_on_main_synced_with_remote()

        names = fake_git.names()
        assert names.index("stash_push") < names.index("hard_reset")
        assert fake_git.stash == [["wip.py"]]

    def test_custom_base_and_remote(self, fake_git, activity_log):
        fake_git.branch = "trunk"
        _controller(fake_git, activity_log, base_branch="trunk", remote="upstream").ensure_on_main_synced_with_remote()
        assert ("fetch", "upstream") in fake_git.calls
        assert ("hard_reset", "upstream/trunk") in fake_git.calls

    @pytest.mark.parametrize("op", ["fetch", "hard_reset"])
    def test_sync_failure_raises(self, fake_git, activity_log, op):
        fake_git.fail_on.add(op)
        with pytest.raises(GitSyncError):
            _controller(fake_git, activity_log).ensure_on_main_synced_with_remote()

    def test_checkout_failure_raises_sync_error(self, fake_git, activity_log):
        fake_git.branch = "feature"
        fake_git.fail_on.add("checkout")
        with pytest.raises(GitSyncError):
            _controller(fake_git, activity_log).ensure_on_main_synced_with_remote()
        assert "fetch" not in fake_git.names()


# ---------------------------------------------------------------------------
# create_work_branch / record_and_commit
# ---------------------------------------------------------------------------


class TestWorkBranch:
    def test_branch_name_format(self):
        assert branch_name("auto", "Fix minor bug", datetime(2026, 10, 17, 9, 30, 5)) == "auto/fix-minor-bug-20261017-093005"

    def test_create_work_branch(self, fake_git, activity_log):
        handle = _controller(fake_git, activity_log).create_work_branch("Fix minor bug")

        assert re.fullmatch(r"auto/fix-minor-bug-\d{8}-\d{6}", handle.name)
        assert handle.base_branch == "main"
        assert handle.created_at == fixed_clock()
        assert ("create_branch", handle.name, "main") in fake_git.calls
        assert fake_git.branch == handle.name

    def test_custom_prefix(self, fake_git, activity_log):
        handle = _controller(fake_git, activity_log, branch_prefix="bot").create_work_branch("Code cleanup")
        assert handle.name.startswith("bot/code-cleanup-")

    def test_record_and_commit(self, fake_git, activity_log, tmp_path):
        handle = _handle()
        assert _controller(fake_git, activity_log).record_and_commit(handle, PLAN) is True

        lines = (tmp_path / "daily_update.txt").read_text().splitlines()
        assert lines == [
            "2026-10-17T09:30:05 - Fix minor bug",
            "2026-10-17T09:30:05   progress: drafted changes",
        ]
        names = fake_git.names()
        assert names.index("add") < names.index("commit") < names.index("push")
        assert ("add", ["daily_update.txt"]) in fake_git.calls
        assert fake_git.commits == ["fix: handle empty input"]
        assert ("push", "origin", handle.name, True) in fake_git.calls

    def test_record_appends(self, fake_git, activity_log, tmp_path):
        (tmp_path / "daily_update.txt").write_text("older line\n")
        plan = ActivityPlan(label="Code cleanup", commit_message="style: remove dead code")
        _controller(fake_git, activity_log).record_and_commit(_handle(), plan)

        assert (tmp_path / "daily_update.txt").read_text().splitlines() == [
            "older line",
            "2026-10-17T09:30:05 - Code cleanup",
        ]

    @pytest.mark.parametrize("op", ["add", "commit", "push"])
    def test_failure_logged_as_error(self, fake_git, activity_log, op):
        fake_git.fail_on.add(op)
        assert _controller(fake_git, activity_log).record_and_commit(_handle(), PLAN) is False
        assert any(r.level == "ERROR" and "Commit/push failed" in r.message for r in activity_log.records)

    def test_failed_commit_discards_partial_change(self, fake_git, activity_log):
        fake_git.fail_on.add("commit")
        _controller(fake_git, activity_log).record_and_commit(_handle(), PLAN)
        assert ("hard_reset", "HEAD") in fake_git.calls

    def test_failed_push_keeps_local_commit(self, fake_git, activity_log):
        fake_git.fail_on.add("push")
        _controller(fake_git, activity_log).record_and_commit(_handle(), PLAN)
        assert fake_git.commits == ["fix: handle empty input"]
