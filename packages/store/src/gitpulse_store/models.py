"""Persisted state models.

Decoupled from gitpulse_core so the store layer can be used (and inspected by
`gitpulse status`) without importing the git/platform machinery.
"""

from __future__ import annotations

from dataclasses import dataclass

LEVELS = ("INFO", "WARNING", "ERROR")


@dataclass
class QuotaState:
    """Today's progress toward a randomized commit target.

    Replaced wholesale when the calendar date changes; the only in-day
    mutation is incrementing consumed_count on a positive decision.
    """

    date: str  # ISO-8601 calendar date, e.g. "2026-10-17"
    consumed_count: int
    target_count: int
    last_action_at: str | None = None  # ISO-8601 timestamp of the last positive decision

    @property
    def remaining(self) -> int:
        return max(self.target_count - self.consumed_count, 0)


@dataclass(frozen=True)
class ActivityRecord:
    """A single line of the activity log. Never mutated after append."""

    timestamp: str  # "YYYY-mm-dd HH:MM:SS" in the configured time zone
    level: str  # "INFO" | "WARNING" | "ERROR"
    message: str

    def format(self) -> str:
        return f"[{self.timestamp}] {self.level}: {self.message}"
