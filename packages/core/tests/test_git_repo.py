"""Tests for the GitPython-backed client.

The integration tests drive a real `git` binary against a bare repository in
tmp_path standing in for the remote.
"""

import shutil
from pathlib import Path

import pytest
from git import Repo

from gitpulse_core.activities import ActivityPlan
from gitpulse_core.branches import BranchLifecycleController
from gitpulse_core.git.base import VcsError
from gitpulse_core.git.repo import GitRepoClient, parse_porcelain
from gitpulse_store.activity_log import ActivityLog

needs_git = pytest.mark.skipif(shutil.which("git") is None, reason="git binary not available")


class TestParsePorcelain:
    def test_empty(self):
        assert parse_porcelain("").is_clean

    def test_modified_staged_untracked(self):
        status = parse_porcelain(" M src/app.py\nM  README.md\nMM both.txt\n?? notes.txt\n")
        assert status.unstaged == ["src/app.py", "both.txt"]
        assert status.staged == ["README.md", "both.txt"]
        assert status.untracked == ["notes.txt"]
        assert status.files == ["README.md", "both.txt", "src/app.py", "notes.txt"]

    def test_rename_uses_new_path(self):
        assert parse_porcelain("R  old.py -> new.py").staged == ["new.py"]

    def test_quoted_path(self):
        assert parse_porcelain('?? "with space.txt"').untracked == ["with space.txt"]

    def test_ignored_entries_skipped(self):
        assert parse_porcelain("!! build/").is_clean

    def test_deleted(self):
        status = parse_porcelain(" D gone.txt\nD  staged-gone.txt")
        assert status.unstaged == ["gone.txt"]
        assert status.staged == ["staged-gone.txt"]


def test_not_a_repository(tmp_path):
    with pytest.raises(VcsError):
        GitRepoClient(str(tmp_path / "missing"))


# ---------------------------------------------------------------------------
# Integration against a real repository
# ---------------------------------------------------------------------------


def _configure(repo):
    with repo.config_writer() as cw:
        cw.set_value("user", "name", "Pulse Test")
        cw.set_value("user", "email", "pulse@example.com")
        cw.set_value("commit", "gpgsign", "false")


@pytest.fixture
def remote(tmp_path):
    bare = Repo.init(tmp_path / "remote.git", bare=True)
    bare.git.symbolic_ref("HEAD", "refs/heads/main")
    return bare


@pytest.fixture
def work(tmp_path, remote):
    repo = Repo.init(tmp_path / "work")
    repo.git.symbolic_ref("HEAD", "refs/heads/main")
    _configure(repo)
    (tmp_path / "work" / "README.md").write_text("hello\n")
    repo.git.add("README.md")
    repo.git.commit("-m", "initial commit")
    repo.create_remote("origin", str(tmp_path / "remote.git"))
    repo.git.push("origin", "main")
    return tmp_path / "work"


@pytest.fixture
def client(work):
    return GitRepoClient(str(work))


def _remote_branches(remote):
    return {line.strip("* ").strip() for line in remote.git.branch("--list").splitlines()}


@needs_git
class TestGitRepoClient:
    def test_working_dir_and_branch(self, client, work):
        assert Path(client.working_dir).resolve() == work.resolve()
        assert client.current_branch() == "main"

    def test_finds_repo_from_subdirectory(self, work):
        (work / "sub").mkdir()
        assert Path(GitRepoClient(str(work / "sub")).working_dir).resolve() == work.resolve()

    def test_status(self, client, work):
        assert client.status().is_clean
        (work / "README.md").write_text("changed\n")
        (work / "new.txt").write_text("x\n")

        status = client.status()
        assert status.unstaged == ["README.md"]
        assert status.untracked == ["new.txt"]

    def test_stash_round_trip_includes_untracked(self, client, work):
        (work / "README.md").write_text("changed\n")
        (work / "new.txt").write_text("x\n")

        client.stash_push("gitpulse-auto test", include_untracked=True)
        assert client.status().is_clean
        assert len(client.stash_list()) == 1

        client.stash_pop()
        assert client.stash_list() == []
        assert (work / "new.txt").exists()
        assert (work / "README.md").read_text() == "changed\n"

    def test_branch_commit_push_delete(self, client, work, remote):
        client.create_branch("auto/test-branch", start_point="main")
        assert client.current_branch() == "auto/test-branch"

        (work / "daily_update.txt").write_text("line\n")
        client.add(["daily_update.txt"])
        client.commit("chore: test")
        client.push("origin", "auto/test-branch", force=True, set_upstream=True)
        assert "auto/test-branch" in _remote_branches(remote)

        client.checkout("main")
        client.delete_branch("auto/test-branch", force=True)
        client.delete_remote_branch("origin", "auto/test-branch")
        assert "auto/test-branch" not in _remote_branches(remote)

    def test_manual_merge_and_push(self, client, work, remote):
        client.create_branch("auto/feature", start_point="main")
        (work / "daily_update.txt").write_text("line\n")
        client.add(["daily_update.txt"])
        client.commit("feat: line")

        client.checkout("main")
        client.merge("auto/feature", message="Merge branch 'auto/feature'", no_ff=True)
        client.push("origin", "main")

        subject = remote.git.log("-1", "--format=%s", "main")
        assert subject == "Merge branch 'auto/feature'"

    def test_fetch_and_hard_reset_discard_local_commits(self, client, work):
        (work / "local.txt").write_text("diverged\n")
        client.add(["local.txt"])
        client.commit("local only")

        client.fetch("origin")
        client.hard_reset("origin/main")

        assert not (work / "local.txt").exists()
        assert client.status().is_clean

    def test_failures_raise_vcs_error(self, client):
        with pytest.raises(VcsError, match="checkout"):
            client.checkout("does-not-exist")
        with pytest.raises(VcsError):
            client.delete_branch("does-not-exist")

    def test_merge_abort_without_merge_raises(self, client):
        with pytest.raises(VcsError):
            client.merge_abort()

    def test_remote_url(self, client, tmp_path):
        assert client.remote_url("origin") == str(tmp_path / "remote.git")
        assert client.remote_url("upstream") is None


@needs_git
def test_branch_lifecycle_against_real_repository(client, work, remote, tmp_path):
    log = ActivityLog(tmp_path / "activity.log")
    controller = BranchLifecycleController(client, log, sleep=lambda s: None)
    (work / "scratch.txt").write_text("uncommitted\n")

    controller.ensure_on_main_synced_with_remote()
    handle = controller.create_work_branch("Update documentation")
    plan = ActivityPlan(label="Update documentation", commit_message="docs: refresh", progress_lines=["reviewed"])
    assert controller.record_and_commit(handle, plan) is True

    assert handle.name in _remote_branches(remote)
    assert not (work / "scratch.txt").exists()

    controller.safe_switch_branch("main")
    assert controller.restore_stash_if_any() is True
    assert (work / "scratch.txt").read_text() == "uncommitted\n"
