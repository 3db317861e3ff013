"""Review source backed by the GitHub API through PyGithub.

REST covers comments, review bodies and checks. Thread resolution is only
exposed by GraphQL, so reviews are assembled from the ``reviewThreads``
connection and matched back to their review by database id.
"""

from __future__ import annotations

import logging

from github import Github, GithubException
from requests.exceptions import RequestException

from revwatch_core.errors import SourceError
from revwatch_core.models import CheckRun, Comment, Review, ReviewComment, parse_timestamp
from revwatch_core.sources.base import ReviewSource

logger = logging.getLogger(__name__)

_BOT_SUFFIX = "[bot]"

# PyGithub raises GithubException for API errors; transport failures surface as requests exceptions.
_API_ERRORS = (GithubException, RequestException)

_THREADS_QUERY = """
query($owner: String!, $repo: String!, $pr: Int!, $cursor: String) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $pr) {
      reviewThreads(first: 100, after: $cursor) {
        pageInfo { hasNextPage endCursor }
        nodes {
          isResolved
          comments(first: 1) {
            nodes {
              body
              pullRequestReview { databaseId }
            }
          }
        }
      }
    }
  }
}
"""


def normalize_login(login: str | None) -> str:
    """REST reports app accounts as ``name[bot]``; GraphQL and gh use ``name``."""
    login = login or ""
    if login.endswith(_BOT_SUFFIX):
        return login[: -len(_BOT_SUFFIX)]
    return login


def _user_login(obj) -> str:
    user = getattr(obj, "user", None)
    return normalize_login(getattr(user, "login", None))


class GithubApiSource(ReviewSource):
    def __init__(self, repo: str, token: str, client: Github | None = None):
        if "/" not in repo:
            raise ValueError(f"Repository must be in owner/name format, got {repo!r}")
        self.repo_name = repo
        self.owner, self.name = repo.split("/", 1)
        self._client = client or Github(token)
        self._repo = None

    def _get_repo(self):
        if self._repo is None:
            self._repo = self._client.get_repo(self.repo_name)
        return self._repo

    def _get_pull(self, pr_number: int):
        return self._get_repo().get_pull(pr_number)

    def list_comments(self, pr_number: int) -> list[Comment]:
        try:
            return [
                Comment(author=_user_login(c), body=c.body or "", created_at=parse_timestamp(c.created_at))
                for c in self._get_pull(pr_number).get_issue_comments()
            ]
        except _API_ERRORS as e:
            raise SourceError(f"Could not list comments for #{pr_number}: {e}") from e

    def list_review_bodies(self, pr_number: int) -> list[Comment]:
        try:
            return [
                Comment(author=_user_login(r), body=r.body or "", created_at=parse_timestamp(r.submitted_at))
                for r in self._get_pull(pr_number).get_reviews()
            ]
        except _API_ERRORS as e:
            raise SourceError(f"Could not list reviews for #{pr_number}: {e}") from e

    def _unresolved_threads(self, pr_number: int) -> dict[str, list[ReviewComment]]:
        """Map review database id → unresolved thread comments, paginating through all threads."""
        by_review: dict[str, list[ReviewComment]] = {}
        cursor = None
        while True:
            variables = {"owner": self.owner, "repo": self.name, "pr": pr_number, "cursor": cursor}
            _, payload = self._client.requester.graphql_query(_THREADS_QUERY, variables)
            data = payload.get("data", payload) if isinstance(payload, dict) else None
            try:
                threads = data["repository"]["pullRequest"]["reviewThreads"]
            except (KeyError, TypeError) as e:
                raise SourceError(f"Malformed reviewThreads response for #{pr_number}") from e

            for thread in threads.get("nodes") or []:
                if thread.get("isResolved"):
                    continue
                first = ((thread.get("comments") or {}).get("nodes") or [None])[0]
                if not first or not first.get("pullRequestReview"):
                    continue
                review_id = str(first["pullRequestReview"].get("databaseId"))
                by_review.setdefault(review_id, []).append(ReviewComment(is_resolved=False, body=first.get("body") or ""))

            page = threads.get("pageInfo") or {}
            if not page.get("hasNextPage"):
                return by_review
            cursor = page.get("endCursor")

    def list_reviews(self, pr_number: int, reviewer: str) -> list[Review]:
        wanted = normalize_login(reviewer)
        try:
            reviews = [r for r in self._get_pull(pr_number).get_reviews() if _user_login(r) == wanted]
            if not reviews:
                return []
            threads = self._unresolved_threads(pr_number)
        except _API_ERRORS as e:
            raise SourceError(f"Could not list reviews for #{pr_number}: {e}") from e

        return [
            Review(
                id=str(r.id),
                state=r.state or "",
                submitted_at=parse_timestamp(r.submitted_at),
                comments=tuple(threads.get(str(r.id), [])),
                author=wanted,
                body=r.body or "",
            )
            for r in reviews
        ]

    def list_checks(self, pr_number: int) -> list[CheckRun]:
        try:
            pr = self._get_pull(pr_number)
            runs = self._get_repo().get_commit(pr.head.sha).get_check_runs()
            return [
                CheckRun(
                    name=run.name,
                    state=(run.conclusion or "").upper() if run.status == "completed" else "PENDING",
                )
                for run in runs
            ]
        except _API_ERRORS as e:
            raise SourceError(f"Could not list checks for #{pr_number}: {e}") from e
