from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from revwatch_core.errors import SourceError

if TYPE_CHECKING:
    from revwatch_core.models import CheckRun
    from revwatch_core.sources.base import ReviewSource

logger = logging.getLogger(__name__)

FAILED_STATES = frozenset({"FAILURE", "STARTUP_FAILURE"})


def failed_checks(source: ReviewSource, pr_number: int) -> list[CheckRun]:
    """Return checks that explicitly failed. Query errors yield an empty list."""
    try:
        checks = source.list_checks(pr_number)
    except SourceError as e:
        logger.warning("Command failed: %s", e)
        return []
    return [c for c in checks if c.state.upper() in FAILED_STATES]
