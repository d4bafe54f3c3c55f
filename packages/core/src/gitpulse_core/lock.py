"""Single-host mutual exclusion between overlapping runs.

The lock is a file holding the epoch time at which it was taken. It is
created with O_CREAT | O_EXCL, so two runs racing for a free lock cannot both
win. A record older than the staleness threshold belongs to a run that died
without releasing it and is discarded by the next acquirer.

Inspecting and discarding a stale record happens while holding an exclusive
flock on a sibling guard file (`<lock>.guard`), so two runs can never both
decide the same record is stale and each replace it. The guard is taken
non-blocking: a run that finds it held treats that as contention.
"""

from __future__ import annotations

import fcntl
import logging
import os
import time
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)

STALE_AFTER_SECONDS = 300


class LockManager:
    def __init__(
        self,
        path: str | Path,
        stale_after: float = STALE_AFTER_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.path = Path(path)
        self.stale_after = stale_after
        self._clock = clock

    @property
    def guard_path(self) -> Path:
        return self.path.with_name(self.path.name + ".guard")

    def acquire(self) -> bool:
        """Take the lock. Returns False if a live lock exists or anything goes wrong.

        Fails closed: an I/O error is reported as "not acquired" so the run
        never proceeds without a confirmed lock.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.guard_path, "a") as guard:
                try:
                    fcntl.flock(guard, fcntl.LOCK_EX | fcntl.LOCK_NB)
                except BlockingIOError:
                    logger.debug("Another run is acquiring %s.", self.path)
                    return False
                # The flock is dropped when the guard file is closed.
                return self._create_record()
        except FileExistsError:
            # Another run created the lock between our check and our create.
            return False
        except OSError as e:
            logger.error("Could not acquire lock %s: %s", self.path, e)
            return False

    def _create_record(self) -> bool:
        if self.path.exists():
            age = self._clock() - self._read_timestamp()
            if age < self.stale_after:
                logger.debug("Lock %s is held (age %.0fs).", self.path, age)
                return False
            logger.warning("Discarding stale lock %s (age %.0fs).", self.path, age)
            self.path.unlink(missing_ok=True)

        fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        with os.fdopen(fd, "w") as f:
            f.write(f"{self._clock():.3f}\n")
        return True

    def release(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove lock %s: %s", self.path, e)

    def _read_timestamp(self) -> float:
        try:
            return float(self.path.read_text().strip())
        except ValueError:
            # Unparseable content: fall back to when the file was written.
            return self.path.stat().st_mtime
