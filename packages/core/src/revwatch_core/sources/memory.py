"""Scripted in-memory source for tests and dry runs."""

from __future__ import annotations

from collections.abc import Iterable

from revwatch_core.errors import SourceError
from revwatch_core.models import CheckRun, Comment, Review
from revwatch_core.sources.base import ReviewSource


class _Script:
    """Replays snapshots in order, then keeps returning the last one.

    A snapshot that is an Exception instance is raised instead of returned.
    """

    def __init__(self, snapshots: Iterable):
        self._snapshots = list(snapshots) or [[]]
        self._index = 0
        self.calls = 0

    def next(self):
        self.calls += 1
        snapshot = self._snapshots[min(self._index, len(self._snapshots) - 1)]
        self._index += 1
        if isinstance(snapshot, Exception):
            raise snapshot
        return list(snapshot)


class InMemorySource(ReviewSource):
    """A ReviewSource whose answers are fixed up front.

    Each argument is either a single list (returned on every call) or, for
    the ``*_sequence`` variants, a list of snapshots consumed one per call.
    """

    def __init__(
        self,
        comments: list[Comment] | None = None,
        review_bodies: list[Comment] | None = None,
        reviews: list[Review] | None = None,
        checks: list[CheckRun] | None = None,
        *,
        review_sequence: list | None = None,
        review_body_sequence: list | None = None,
    ):
        self._comments = _Script([comments or []])
        self._bodies = _Script(review_body_sequence if review_body_sequence is not None else [review_bodies or []])
        self._reviews = _Script(review_sequence if review_sequence is not None else [reviews or []])
        self._checks = _Script([checks or []])
        self.review_queries: list[tuple[int, str]] = []

    @property
    def comment_calls(self) -> int:
        return self._comments.calls

    @property
    def review_body_calls(self) -> int:
        return self._bodies.calls

    @property
    def review_calls(self) -> int:
        return self._reviews.calls

    def list_comments(self, pr_number: int) -> list[Comment]:
        return self._comments.next()

    def list_review_bodies(self, pr_number: int) -> list[Comment]:
        return self._bodies.next()

    def list_reviews(self, pr_number: int, reviewer: str) -> list[Review]:
        self.review_queries.append((pr_number, reviewer))
        return self._reviews.next()

    def list_checks(self, pr_number: int) -> list[CheckRun]:
        return self._checks.next()


class FailingSource(ReviewSource):
    """A source whose every query raises SourceError."""

    def __init__(self, message: str = "gh: command failed"):
        self.message = message

    def list_comments(self, pr_number: int) -> list[Comment]:
        raise SourceError(self.message)

    def list_review_bodies(self, pr_number: int) -> list[Comment]:
        raise SourceError(self.message)

    def list_reviews(self, pr_number: int, reviewer: str) -> list[Review]:
        raise SourceError(self.message)

    def list_checks(self, pr_number: int) -> list[CheckRun]:
        raise SourceError(self.message)
