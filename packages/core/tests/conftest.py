"""Shared fixtures for the core test-suite."""

from __future__ import annotations

import pytest
from fakes import FakeGit, fixed_clock

from gitpulse_store.activity_log import ActivityLog


@pytest.fixture
def fake_git(tmp_path):
    return FakeGit(tmp_path)


@pytest.fixture
def activity_log(tmp_path):
    return ActivityLog(tmp_path / "state" / "activity.log", clock=fixed_clock)


@pytest.fixture
def delays():
    """A list that collects every delay passed to the injected sleep."""
    return []
