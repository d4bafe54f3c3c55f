"""In-memory store: keeps the quota state for the lifetime of the process.

Used when the state should not outlive a run (and in tests). Using a
MemoryStore rather than None lets the tracker always call load()/save()
without conditional checks.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from gitpulse_store.base import BaseStateStore

if TYPE_CHECKING:
    from gitpulse_store.models import QuotaState


class MemoryStore(BaseStateStore):
    def __init__(self, state: QuotaState | None = None):
        self._state = state

    def load(self) -> QuotaState | None:
        return replace(self._state) if self._state is not None else None

    def save(self, state: QuotaState) -> None:
        self._state = replace(state)
