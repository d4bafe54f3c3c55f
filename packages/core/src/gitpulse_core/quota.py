"""Daily quota: decide whether this invocation should produce activity.

The decision is a pure function over an explicit QuotaState; DailyQuotaTracker
owns the load/store boundary and the NEW DAY log marker.

The consumed count is incremented when the decision is made, not when the
branch/PR/merge that follows succeeds. A failed run still spends one unit of
the day's quota, which bounds how often the tool can act no matter how the
remote behaves.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import TYPE_CHECKING, Callable

from gitpulse_store.models import QuotaState

if TYPE_CHECKING:
    from gitpulse_store.activity_log import ActivityLog
    from gitpulse_store.base import BaseStateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaBounds:
    """Inclusive range the daily target is drawn from."""

    minimum: int = 8
    maximum: int = 15

    def __post_init__(self):
        if not 1 <= self.minimum <= self.maximum:
            raise ValueError(f"Invalid quota bounds [{self.minimum}, {self.maximum}].")

    def draw(self, rng: random.Random) -> int:
        return rng.randint(self.minimum, self.maximum)


@dataclass(frozen=True)
class QuotaDecision:
    should_act: bool
    state: QuotaState
    new_day: bool


def new_day_state(today: date, rng: random.Random, bounds: QuotaBounds) -> QuotaState:
    return QuotaState(date=today.isoformat(), consumed_count=0, target_count=bounds.draw(rng))


def decide(
    state: QuotaState | None,
    today: date,
    rng: random.Random,
    bounds: QuotaBounds,
    now: datetime | None = None,
) -> QuotaDecision:
    """Return the decision for one invocation and the state to persist.

    The input state is never mutated.
    """
    new_day = state is None or state.date != today.isoformat()
    current = new_day_state(today, rng, bounds) if new_day else replace(state)

    should_act = current.consumed_count < current.target_count
    if should_act:
        current.consumed_count += 1
        current.last_action_at = (now or datetime.now()).isoformat(timespec="seconds")

    return QuotaDecision(should_act=should_act, state=current, new_day=new_day)


class DailyQuotaTracker:
    def __init__(
        self,
        store: BaseStateStore,
        activity_log: ActivityLog,
        bounds: QuotaBounds | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.activity_log = activity_log
        self.bounds = bounds or QuotaBounds()
        self.rng = rng or random.Random()
        self._clock = clock or datetime.now
        self.last_state: QuotaState | None = None

    def should_act_now(self) -> bool:
        """Load, decide, persist. Returns whether this invocation should act."""
        now = self._clock()
        decision = decide(self.store.load(), now.date(), self.rng, self.bounds, now=now)

        if decision.new_day:
            self.activity_log.new_day(decision.state.date, decision.state.target_count)

        self.store.save(decision.state)
        self.last_state = decision.state

        logger.debug(
            "Quota %s: %d/%d (act=%s)",
            decision.state.date,
            decision.state.consumed_count,
            decision.state.target_count,
            decision.should_act,
        )
        return decision.should_act
