"""Credential and environment checks.

gitpulse never talks to an auth service itself: `gh` and PyGithub read the
token, and this module only makes sure one is present before any work starts.

Resolution order (stops at first success):
  1. GITHUB_TOKEN environment variable (what GitHub Actions injects)
  2. GH_TOKEN environment variable (what the GitHub CLI documents)
"""

from __future__ import annotations

import logging
import os

from gitpulse_core.config import TOKEN_ENV_VARS

logger = logging.getLogger(__name__)


def resolve_github_token() -> str | None:
    """Return a GitHub token or None if neither variable is set.

    Never raises; callers should check for None and emit a UsageError.
    """
    for name in TOKEN_ENV_VARS:
        token = os.environ.get(name)
        if token:
            logger.debug("Resolved GitHub token from %s.", name)
            return token
    return None


def is_trusted_automation() -> bool:
    """True when running under GitHub Actions, which isolates runs itself."""
    return os.environ.get("GITHUB_ACTIONS") == "true"
