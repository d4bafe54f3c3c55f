"""Append-only, human-readable record of what a run did.

Records are buffered in memory for the duration of a run and appended to the
log file in one go by flush(), which the run driver calls from its
finalization step. Every record is also forwarded to the standard logging
module as it is appended, so console output and the file never disagree.

File format, one record per line:

    [2026-10-17 14:02:11] INFO: === NEW DAY 2026-10-17: target 11 commits ===
    [2026-10-17 14:02:12] WARNING: Could not delete local branch auto/...
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable

from gitpulse_store.models import LEVELS, ActivityRecord

logger = logging.getLogger(__name__)

_LOGGING_LEVELS = {"INFO": logging.INFO, "WARNING": logging.WARNING, "ERROR": logging.ERROR}


class ActivityLog:
    def __init__(self, path: str | Path | None, clock: Callable[[], datetime] | None = None):
        self._path = Path(path) if path is not None else None
        self._clock = clock or datetime.now
        self._records: list[ActivityRecord] = []
        self._pending = 0

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def records(self) -> list[ActivityRecord]:
        """All records appended during this run, flushed or not."""
        return list(self._records)

    def append(self, level: str, message: str) -> ActivityRecord:
        if level not in LEVELS:
            raise ValueError(f"Unknown activity level: {level!r}. Choose one of {', '.join(LEVELS)}.")
        record = ActivityRecord(
            timestamp=self._clock().strftime("%Y-%m-%d %H:%M:%S"),
            level=level,
            message=message,
        )
        self._records.append(record)
        self._pending += 1
        logger.log(_LOGGING_LEVELS[level], message)
        return record

    def info(self, message: str) -> ActivityRecord:
        return self.append("INFO", message)

    def warning(self, message: str) -> ActivityRecord:
        return self.append("WARNING", message)

    def error(self, message: str) -> ActivityRecord:
        return self.append("ERROR", message)

    def new_day(self, date: str, target: int) -> ActivityRecord:
        return self.info(f"=== NEW DAY {date}: target {target} commits ===")

    def flush(self) -> int:
        """Append every not-yet-written record to the log file.

        Returns the number of records written. Safe to call more than once;
        a second call with nothing pending is a no-op.
        """
        if not self._pending:
            return 0
        pending = self._records[-self._pending :]
        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "a", encoding="utf-8") as f:
                for record in pending:
                    f.write(record.format() + "\n")
        self._pending = 0
        return len(pending)


def tail(path: str | Path, limit: int = 20) -> list[str]:
    """Return the last `limit` lines of a log file, or [] if it does not exist."""
    p = Path(path)
    if not p.exists():
        return []
    lines = p.read_text(encoding="utf-8").splitlines()
    return lines[-limit:] if limit > 0 else []
