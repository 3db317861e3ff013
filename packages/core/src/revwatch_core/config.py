import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

REVIEW_FILTERS = ("actionable", "latest")
SOURCES = ("gh", "api")

DEFAULT_CONFIG: dict = {
    "interval_seconds": 60,
    "timeout_seconds": 15 * 60,
    "trigger_phrase": "/gemini review",
    "bot_name": "gemini-code-assist",
    "skip_phrases": [
        "unable to generate a summary",
        "file types involved not being currently supported",
    ],
    "review_filter": "actionable",  # "latest" keeps the newest review regardless of state
    "check_pr_checks": False,
    "output_envelope": False,  # True wraps stdout as {"reviews": [...]}
    "source": "gh",
    "gh_path": "gh",  # GitHub CLI executable, used by the gh source and token lookup
}


@dataclass(frozen=True)
class WatchConfig:
    """Immutable settings handed to ReviewWatcher.

    Built once by ``load_config`` and never mutated while a watch runs.
    """

    interval_seconds: float = DEFAULT_CONFIG["interval_seconds"]
    timeout_seconds: float = DEFAULT_CONFIG["timeout_seconds"]
    trigger_phrase: str = DEFAULT_CONFIG["trigger_phrase"]
    bot_name: str = DEFAULT_CONFIG["bot_name"]
    skip_phrases: tuple[str, ...] = tuple(DEFAULT_CONFIG["skip_phrases"])
    review_filter: str = DEFAULT_CONFIG["review_filter"]
    check_pr_checks: bool = DEFAULT_CONFIG["check_pr_checks"]
    output_envelope: bool = DEFAULT_CONFIG["output_envelope"]
    source: str = DEFAULT_CONFIG["source"]
    gh_path: str = DEFAULT_CONFIG["gh_path"]
    github_token: Optional[str] = None

    def __post_init__(self):
        if self.interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {self.interval_seconds!r}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {self.timeout_seconds!r}")
        if self.review_filter not in REVIEW_FILTERS:
            raise ValueError(f"Unknown review_filter: {self.review_filter!r}. Choose 'actionable' or 'latest'.")
        if self.source not in SOURCES:
            raise ValueError(f"Unknown source: {self.source!r}. Choose 'gh' or 'api'.")

    @classmethod
    def from_dict(cls, data: dict) -> "WatchConfig":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        if "skip_phrases" in values:
            values["skip_phrases"] = tuple(values["skip_phrases"] or ())
        return cls(**values)


def load_config(config_path: str = ".revwatch.yml", cli_overrides: Optional[dict] = None) -> WatchConfig:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .revwatch.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "skip_phrases": list(DEFAULT_CONFIG["skip_phrases"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Only the API source needs it; the gh source authenticates itself.
    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    return WatchConfig.from_dict(config)
