"""Catalog of simulated engineering activities and the per-run choice among them."""

from __future__ import annotations

import random
import re
from dataclasses import dataclass, field

DEFAULT_ACTIVITIES: list[dict] = [
    {
        "label": "Refactor utilities",
        "messages": ["refactor: tidy shared helpers", "refactor: simplify utility module"],
    },
    {
        "label": "Update documentation",
        "messages": ["docs: clarify setup steps", "docs: refresh usage notes"],
    },
    {
        "label": "Improve test coverage",
        "messages": ["test: cover edge cases", "test: add regression checks"],
    },
    {
        "label": "Fix minor bug",
        "messages": ["fix: handle empty input", "fix: correct off-by-one in pagination"],
    },
    {
        "label": "Performance tuning",
        "messages": ["perf: cache repeated lookups", "perf: reduce allocations in hot path"],
    },
    {
        "label": "Dependency maintenance",
        "messages": ["chore: bump dependencies", "chore: prune unused packages"],
    },
    {
        "label": "Code cleanup",
        "messages": ["style: remove dead code", "style: normalize formatting"],
    },
]

PROGRESS_STEPS: list[str] = [
    "analysed affected modules",
    "drafted changes",
    "ran local checks",
    "reviewed diff",
    "updated notes",
]

# Each progress sub-step is included with this probability, independently.
PROGRESS_PROBABILITY = 0.5
PROGRESS_SUBSTEPS = 3

_SLUG_RE = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class ActivityPlan:
    label: str
    commit_message: str
    progress_lines: list[str] = field(default_factory=list)

    @property
    def slug(self) -> str:
        return slugify(self.label)


def slugify(label: str) -> str:
    """Lowercase and collapse every run of non-alphanumerics into a single dash."""
    slug = _SLUG_RE.sub("-", label.lower()).strip("-")
    return slug or "activity"


def load_catalog(config: dict) -> list[dict]:
    """Return the configured activity catalog, validated, or the built-in one."""
    catalog = config.get("activities") or DEFAULT_ACTIVITIES
    for entry in catalog:
        if not entry.get("label") or not entry.get("messages"):
            raise ValueError(f"Activity entries need a label and at least one message: {entry!r}")
    return catalog


def choose_activity(rng: random.Random, catalog: list[dict] | None = None) -> ActivityPlan:
    entry = rng.choice(catalog or DEFAULT_ACTIVITIES)
    message = rng.choice(entry["messages"])
    progress = [rng.choice(PROGRESS_STEPS) for _ in range(PROGRESS_SUBSTEPS) if rng.random() < PROGRESS_PROBABILITY]
    return ActivityPlan(label=entry["label"], commit_message=message, progress_lines=progress)
