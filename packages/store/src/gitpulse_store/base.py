"""Abstract state store interface.

The quota tracker depends on BaseStateStore, not on a concrete backend, so the
persistence format can change without touching the decision logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gitpulse_store.models import QuotaState


class BaseStateStore(ABC):
    """Load/store boundary for the daily quota state."""

    @abstractmethod
    def load(self) -> QuotaState | None:
        """Return the persisted state, or None when nothing usable is stored.

        Never raises for a missing or unreadable record; a fresh day is
        started instead.
        """

    @abstractmethod
    def save(self, state: QuotaState) -> None:
        """Persist the whole state, replacing whatever was stored before."""

    def close(self) -> None:
        """Release any resources held by the store.

        Default is a no-op so callers can always call close() safely.
        """
