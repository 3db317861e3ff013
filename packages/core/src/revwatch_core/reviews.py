"""Fetching and filtering the automated reviewer's reviews."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from revwatch_core.errors import SourceError
from revwatch_core.models import CHANGES_REQUESTED

if TYPE_CHECKING:
    from revwatch_core.models import Review
    from revwatch_core.sources.base import ReviewSource

logger = logging.getLogger(__name__)


def is_actionable(review: Review) -> bool:
    """A review blocks merge when it requests changes or still has unresolved comments."""
    return review.state == CHANGES_REQUESTED or bool(review.unresolved_comments)


def filter_actionable(reviews: list[Review]) -> list[Review]:
    return [r for r in reviews if is_actionable(r)]


def filter_latest(reviews: list[Review]) -> list[Review]:
    """Keep reviews that still carry comments, plus the most recent review whatever its state."""
    if not reviews:
        return []
    latest_id = reviews[-1].id
    return [r for r in reviews if r.id == latest_id or r.comments]


_FILTERS = {
    "actionable": filter_actionable,
    "latest": filter_latest,
}


def fetch_reviews(source: ReviewSource, pr_number: int, reviewer: str, review_filter: str = "actionable") -> list[Review]:
    """Query ``reviewer``'s unresolved reviews and apply the client-side filter.

    A failed query is logged and reported as no reviews so the poll loop
    simply tries again on its next tick.
    """
    try:
        reviews = source.list_reviews(pr_number, reviewer)
    except SourceError as e:
        logger.warning("Command failed: %s", e)
        return []
    return _FILTERS[review_filter](reviews)


def count_unresolved_threads(reviews: list[Review]) -> int:
    count = 0
    for r in reviews:
        if r.state == CHANGES_REQUESTED and not r.comments:
            count += 1
        else:
            count += len(r.unresolved_comments)
    return count
