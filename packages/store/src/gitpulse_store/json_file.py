"""JsonFileStore: the quota tracking record as a small JSON document.

Data format: a single JSON object, e.g.

    {"date": "2026-10-17", "consumed_count": 3, "target_count": 11,
     "last_action_at": "2026-10-17T14:02:11+07:00"}

No schema versioning: unknown keys are ignored, missing keys fall back to a
fresh day.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from gitpulse_store.base import BaseStateStore
from gitpulse_store.models import QuotaState

logger = logging.getLogger(__name__)


class JsonFileStore(BaseStateStore):
    """Stores the quota state in a JSON file, rewritten on every save."""

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> QuotaState | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return self._from_dict(data)
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            # An unreadable tracking file is treated like a missing one: the
            # tracker starts a new day and overwrites it.
            logger.warning("Ignoring unreadable tracking file %s (%s): %s", self._path, type(e).__name__, e)
            return None

    def save(self, state: QuotaState) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._to_dict(state), indent=2) + "\n", encoding="utf-8")
        tmp.replace(self._path)

    @staticmethod
    def _to_dict(state: QuotaState) -> dict:
        return {
            "date": state.date,
            "consumed_count": state.consumed_count,
            "target_count": state.target_count,
            "last_action_at": state.last_action_at,
        }

    @staticmethod
    def _from_dict(d: dict) -> QuotaState:
        return QuotaState(
            date=str(d["date"]),
            consumed_count=int(d["consumed_count"]),
            target_count=int(d["target_count"]),
            last_action_at=d.get("last_action_at"),
        )
