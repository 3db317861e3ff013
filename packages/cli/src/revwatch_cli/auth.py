"""GitHub token lookup for the ``api`` source.

GITHUB_TOKEN wins; otherwise the token of the local GitHub CLI session is
borrowed, using the same gh executable the ``gh`` source runs.
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

_GH_AUTH_TIMEOUT_SECONDS = 5


def gh_session_token(gh_path: str = "gh", timeout: float = _GH_AUTH_TIMEOUT_SECONDS) -> str | None:
    """Return ``gh auth token`` output, or None when gh is unusable or logged out."""
    try:
        result = subprocess.run([gh_path, "auth", "token"], capture_output=True, text=True, timeout=timeout)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("gh auth token unavailable: %s", e)
        return None
    if result.returncode != 0:
        logger.debug("gh auth token exited with status %d", result.returncode)
        return None
    return result.stdout.strip() or None


def resolve_github_token(gh_path: str = "gh") -> str | None:
    """Return a token from the environment or the gh session. Never raises."""
    return os.environ.get("GITHUB_TOKEN") or gh_session_token(gh_path)
