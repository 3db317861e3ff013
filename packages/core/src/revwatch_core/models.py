"""Data carried between review sources and the watcher.

Everything here is a plain frozen dataclass. Sources build them from
whatever their backend returns; the watcher only reads them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

CHANGES_REQUESTED = "CHANGES_REQUESTED"


def parse_timestamp(value) -> datetime:
    """Parse an ISO-8601 timestamp from GitHub into an aware datetime.

    Accepts the trailing ``Z`` GitHub uses, naive datetimes (assumed UTC)
    and ``datetime`` objects. Anything missing or unparsable maps to EPOCH
    so comparisons against a trigger time stay well defined.
    """
    if value is None or value == "":
        return EPOCH
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return EPOCH
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _isoformat(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class Comment:
    """A conversation comment (or a top-level review body) on a pull request."""

    author: str
    body: str
    created_at: datetime = EPOCH


@dataclass(frozen=True)
class ReviewComment:
    """One inline thread comment inside a review."""

    is_resolved: bool
    body: str = ""

    def to_dict(self) -> dict:
        return {"is_resolved": self.is_resolved, "body": self.body}


@dataclass(frozen=True)
class Review:
    """A review submitted by the automated reviewer."""

    id: str
    state: str  # "APPROVED" | "CHANGES_REQUESTED" | "COMMENTED" | ...
    submitted_at: datetime = EPOCH
    comments: tuple[ReviewComment, ...] = field(default_factory=tuple)
    author: str = ""
    body: str = ""

    @property
    def unresolved_comments(self) -> list[ReviewComment]:
        return [c for c in self.comments if c.is_resolved is False]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "state": self.state,
            "submitted_at": _isoformat(self.submitted_at),
            "author": self.author,
            "body": self.body,
            "comments": [c.to_dict() for c in self.comments],
        }


@dataclass(frozen=True)
class CheckRun:
    """A CI check attached to the pull request's head commit."""

    name: str
    state: str  # "SUCCESS" | "FAILURE" | "STARTUP_FAILURE" | "PENDING" | ...


@dataclass
class PollState:
    """Process-local state for one watch invocation. Never persisted."""

    start_time: float
    trigger_timestamp: datetime = EPOCH
    seen_review_ids: set[str] = field(default_factory=set)

    def remember(self, reviews) -> None:
        # Only ever grows within an invocation.
        self.seen_review_ids.update(r.id for r in reviews)

    def unseen(self, reviews) -> list[Review]:
        return [r for r in reviews if r.id not in self.seen_review_ids]
