"""Trigger and skip detection.

Both detectors swallow SourceError: a failed comment query looks like an
empty conversation, which the watcher already treats as "nothing to wait for".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from revwatch_core.errors import SourceError

if TYPE_CHECKING:
    from revwatch_core.models import Comment
    from revwatch_core.sources.base import ReviewSource

logger = logging.getLogger(__name__)

NO_COMMENTS = "no_comments"
NOT_TRIGGERED = "not_triggered"


@dataclass(frozen=True)
class TriggerResult:
    triggered: bool
    reason: str | None = None
    comment: Comment | None = None

    @property
    def timestamp(self) -> datetime | None:
        return self.comment.created_at if self.comment else None


def latest_comment(source: ReviewSource, pr_number: int) -> Comment | None:
    try:
        comments = source.list_comments(pr_number)
    except SourceError as e:
        logger.warning("Command failed: %s", e)
        return None
    return comments[-1] if comments else None


def has_trigger(body: str | None, phrase: str) -> bool:
    """Case-insensitive substring match; the phrase may sit anywhere in the comment."""
    return phrase.lower() in (body or "").strip().lower()


def detect_trigger(source: ReviewSource, pr_number: int, phrase: str) -> TriggerResult:
    comment = latest_comment(source, pr_number)
    if comment is None:
        return TriggerResult(triggered=False, reason=NO_COMMENTS)
    if not has_trigger(comment.body, phrase):
        return TriggerResult(triggered=False, reason=NOT_TRIGGERED, comment=comment)
    return TriggerResult(triggered=True, comment=comment)


def _mentions_skip(body: str | None, phrases) -> bool:
    return bool(body) and any(phrase in body for phrase in phrases)


def is_skipped(source: ReviewSource, pr_number: int, bot_name: str, phrases) -> bool:
    """Return True if ``bot_name`` said in a comment or review that it will not review.

    Read-only: calling it twice against an unchanged PR gives the same answer.
    """
    try:
        conversation = source.list_conversation(pr_number)
    except SourceError as e:
        logger.warning("Command failed: %s", e)
        return False

    return any(c.author == bot_name and _mentions_skip(c.body, phrases) for c in conversation)
