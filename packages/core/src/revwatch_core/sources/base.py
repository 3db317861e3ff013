"""Abstract review source.

The watcher talks to GitHub only through this interface so the polling
logic can be driven by an in-memory source in tests:

    ReviewWatcher → detectors / aggregator → ReviewSource
                                               ├─ GhCliSource      (gh CLI + gh-pr-review)
                                               ├─ GithubApiSource  (PyGithub REST + GraphQL)
                                               └─ InMemorySource   (scripted snapshots)

Every method raises SourceError on failure. Callers decide how to degrade.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from revwatch_core.models import CheckRun, Comment, Review


class ReviewSource(ABC):
    @abstractmethod
    def list_comments(self, pr_number: int) -> list[Comment]:
        """Return the pull request's conversation comments, oldest first."""

    @abstractmethod
    def list_review_bodies(self, pr_number: int) -> list[Comment]:
        """Return the top-level body of every review, by any author."""

    @abstractmethod
    def list_reviews(self, pr_number: int, reviewer: str) -> list[Review]:
        """Return ``reviewer``'s reviews, narrowed to unresolved threads.

        Order is whatever the backend returns; callers must not assume sorting.
        """

    def list_conversation(self, pr_number: int) -> list[Comment]:
        """Return conversation comments followed by review bodies.

        Sources that can fetch both in one request should override this so
        the two lists come from the same snapshot.
        """
        return [*self.list_comments(pr_number), *self.list_review_bodies(pr_number)]

    def list_checks(self, pr_number: int) -> list[CheckRun]:
        """Return CI checks for the pull request head.

        Sources without CI access report no checks.
        """
        return []
