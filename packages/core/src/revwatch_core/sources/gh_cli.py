"""Review source backed by the GitHub CLI.

Reviews are read through the ``gh-pr-review`` extension
(``gh extension install agynio/gh-pr-review``), which already narrows each
review to its unresolved threads. Conversation comments and checks use
stock ``gh pr`` subcommands with ``--json`` output.
"""

from __future__ import annotations

import json
import logging
import subprocess

from revwatch_core.errors import SourceError
from revwatch_core.models import CheckRun, Comment, Review, ReviewComment, parse_timestamp
from revwatch_core.sources.base import ReviewSource

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 60


def _first_line(text: str | None) -> str:
    text = (text or "").strip()
    return text.splitlines()[0] if text else "Unknown error"


def _login(author) -> str:
    if isinstance(author, dict):
        return author.get("login") or ""
    return author or ""


def _comment_from_json(item: dict) -> Comment:
    return Comment(
        author=_login(item.get("author")),
        body=item.get("body") or "",
        created_at=parse_timestamp(item.get("createdAt") or item.get("submittedAt")),
    )


def _review_from_json(item: dict) -> Review:
    comments = item.get("comments")
    if not isinstance(comments, list):
        comments = []
    return Review(
        id=str(item.get("id", "")),
        state=item.get("state") or "",
        submitted_at=parse_timestamp(item.get("submitted_at") or item.get("submittedAt")),
        comments=tuple(
            ReviewComment(
                # Only an explicit False counts as unresolved; missing flags do not.
                is_resolved=c.get("is_resolved", c.get("isResolved")) is not False,
                body=c.get("body") or "",
            )
            for c in comments
            if isinstance(c, dict)
        ),
        author=_login(item.get("author") or item.get("author_login")),
        body=item.get("body") or "",
    )


class GhCliSource(ReviewSource):
    def __init__(self, repo: str, gh_path: str = "gh", timeout: float = _TIMEOUT_SECONDS):
        self.repo = repo
        self.gh_path = gh_path
        self.timeout = timeout

    def _run_json(self, *args: str, accept_nonzero: bool = False):
        """Run a gh subcommand and parse its stdout as JSON.

        Returns None for empty output. ``accept_nonzero`` keeps the output of
        commands such as ``gh pr checks`` that exit non-zero to report state.
        """
        cmd = [self.gh_path, *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise SourceError(f"{self.gh_path} executable not found") from e
        except OSError as e:
            raise SourceError(f"Could not run {self.gh_path}: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise SourceError(f"{' '.join(args[:2])} timed out after {self.timeout}s") from e

        stdout = (result.stdout or "").strip()
        if result.returncode != 0 and not (accept_nonzero and stdout):
            raise SourceError(_first_line(result.stderr) if result.stderr else f"exit status {result.returncode}")
        if not stdout:
            return None
        try:
            return json.loads(stdout)
        except json.JSONDecodeError as e:
            raise SourceError(f"Malformed JSON from gh {args[0]}: {e}") from e

    def _pr_view(self, pr_number: int, field_name: str) -> list:
        data = self._run_json("pr", "view", str(pr_number), "-R", self.repo, "--json", field_name)
        if data is None:
            return []
        if not isinstance(data, dict):
            raise SourceError(f"Unexpected payload from gh pr view: {type(data).__name__}")
        items = data.get(field_name) or []
        return [i for i in items if isinstance(i, dict)]

    def list_comments(self, pr_number: int) -> list[Comment]:
        return [_comment_from_json(c) for c in self._pr_view(pr_number, "comments")]

    def list_review_bodies(self, pr_number: int) -> list[Comment]:
        return [_comment_from_json(r) for r in self._pr_view(pr_number, "reviews")]

    def list_conversation(self, pr_number: int) -> list[Comment]:
        # One `gh pr view` call so comments and reviews share a snapshot.
        data = self._run_json("pr", "view", str(pr_number), "-R", self.repo, "--json", "comments,reviews")
        if data is None:
            return []
        if not isinstance(data, dict):
            raise SourceError(f"Unexpected payload from gh pr view: {type(data).__name__}")
        items = [*(data.get("comments") or []), *(data.get("reviews") or [])]
        return [_comment_from_json(i) for i in items if isinstance(i, dict)]

    def list_reviews(self, pr_number: int, reviewer: str) -> list[Review]:
        data = self._run_json(
            "pr-review",
            "review",
            "view",
            str(pr_number),
            "-R",
            self.repo,
            "--reviewer",
            reviewer,
            "--unresolved",
        )
        if not data:
            return []
        if not isinstance(data, dict):
            raise SourceError(f"Unexpected payload from gh pr-review: {type(data).__name__}")
        return [_review_from_json(r) for r in data.get("reviews") or [] if isinstance(r, dict)]

    def list_checks(self, pr_number: int) -> list[CheckRun]:
        data = self._run_json(
            "pr", "checks", str(pr_number), "-R", self.repo, "--json", "name,state", accept_nonzero=True
        )
        if not isinstance(data, list):
            return []
        return [CheckRun(name=c.get("name") or "", state=c.get("state") or "") for c in data if isinstance(c, dict)]
