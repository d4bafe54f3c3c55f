import os
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

DEFAULT_CONFIG: dict = {
    "repo_path": ".",
    "repo": None,  # owner/name; only needed by the "api" platform, detected from the remote otherwise
    "remote": "origin",
    "base_branch": "main",
    "branch_prefix": "auto",
    "platform": "gh",  # "gh" = GitHub CLI, "api" = REST via PyGithub
    "daily_min": 8,
    "daily_max": 15,
    "timezone": "UTC",
    "state_dir": None,  # None = <repo_path>/.git/gitpulse
    "tracking_file": "commit_tracking.json",
    "log_file": "activity.log",
    "lock_file": "run.lock",
    "lock_stale_seconds": 300,
    "daily_file": "daily_update.txt",  # tracked file the activity lines are appended to
    "merge_delay_seconds": 5,
    "stash_settle_seconds": 1,
    "activities": None,  # None = built-in catalog; list of {label, messages} to override
    "log_level": "INFO",
}

TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")


def load_config(config_path: str = ".gitpulse.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .gitpulse.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    if not 1 <= int(config["daily_min"]) <= int(config["daily_max"]):
        raise ValueError(
            f"Invalid daily bounds: daily_min={config['daily_min']}, daily_max={config['daily_max']}. "
            "Expected 1 <= daily_min <= daily_max."
        )
    if config["platform"] not in ("gh", "api"):
        raise ValueError(f"Unknown platform: {config['platform']!r}. Choose 'gh' or 'api'.")
    try:
        ZoneInfo(str(config["timezone"]))
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(
            f"Unknown timezone: {config['timezone']!r}. Use an IANA name such as 'UTC' or 'Asia/Jakarta'."
        ) from e

    # Resolve credentials and the scheduling environment from environment variables
    config["github_token"] = next((os.environ[v] for v in TOKEN_ENV_VARS if os.environ.get(v)), None)
    config["trusted_automation"] = os.environ.get("GITHUB_ACTIONS") == "true"

    return config


def state_path(config: dict, key: str) -> Path:
    """Resolve one of the state file names (tracking_file, log_file, lock_file) to a path.

    State lives under .git/ by default: never tracked, never stashed, and left
    alone by `git reset --hard`.
    """
    state_dir = config.get("state_dir")
    base = Path(state_dir) if state_dir else Path(config["repo_path"]) / ".git" / "gitpulse"
    return base / config[key]
