"""Tests for the review-polling watchdog state machine."""

import io
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import requests
from rich.console import Console

from revwatch_core.config import WatchConfig
from revwatch_core.errors import SourceError
from revwatch_core.models import CheckRun, Comment, Review, ReviewComment
from revwatch_core.sources.github_api import GithubApiSource
from revwatch_core.sources.memory import FailingSource, InMemorySource
from revwatch_core.watcher import NoOp, ReviewWatcher, Success, Timeout, exit_code_for

BOT = "gemini-code-assist"
T0 = datetime(2024, 5, 1, 12, tzinfo=timezone.utc)
TRIGGER = Comment("alice", "/gemini review", T0)


class FakeClock:
    """Monotonic clock that only moves when the watcher sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _review(id, state="CHANGES_REQUESTED", submitted_at=T0 + timedelta(seconds=1), comments=()):
    return Review(id=id, state=state, submitted_at=submitted_at, comments=tuple(comments), author=BOT)


def _watcher(source, clock=None, **config):
    clock = clock or FakeClock()
    out = Console(file=io.StringIO(), width=200)
    cfg = WatchConfig(**config)
    return ReviewWatcher(source, cfg, sleep=clock.sleep, clock=clock, out=out), clock


def _output(watcher) -> str:
    return watcher._console.file.getvalue()


class TestTrigger:
    def test_no_trigger_exits_without_review_query(self):
        source = InMemorySource(comments=[Comment("alice", "looks good", T0)])
        watcher, clock = _watcher(source)

        outcome = watcher.watch(1, "owner/repo")

        assert outcome == NoOp("not_triggered")
        assert exit_code_for(outcome) == 0
        assert source.review_queries == []
        assert clock.sleeps == []

    def test_no_comments_is_noop(self):
        source = InMemorySource(comments=[])
        watcher, _ = _watcher(source)
        assert watcher.watch(1, "owner/repo") == NoOp("no_comments")
        assert "No comments found" in _output(watcher)
        assert source.review_queries == []

    def test_comment_query_failure_is_noop(self):
        watcher, _ = _watcher(FailingSource())
        assert watcher.watch(1, "owner/repo") == NoOp("no_comments")

    def test_assume_new_skips_comment_check(self):
        source = InMemorySource(comments=[], reviews=[_review("1")])
        watcher, _ = _watcher(source)

        outcome = watcher.watch(1, "owner/repo", assume_new=True)

        assert isinstance(outcome, Success)
        assert [r.id for r in outcome.reviews] == ["1"]
        assert "assuming new PR" in _output(watcher)


class TestSkip:
    def test_skip_at_baseline_exits_before_polling(self):
        source = InMemorySource(
            comments=[Comment(BOT, "I'm unable to generate a summary for this pull request."), TRIGGER],
        )
        watcher, clock = _watcher(source)

        outcome = watcher.watch(1, "owner/repo")

        assert outcome == NoOp("review_skipped")
        assert exit_code_for(outcome) == 0
        assert source.review_calls == 0
        assert clock.sleeps == []

    def test_skip_detected_while_polling(self):
        declined = Comment(BOT, "Reviews skipped: file types involved not being currently supported.")
        source = InMemorySource(
            comments=[TRIGGER],
            review_body_sequence=[[], [declined]],
            reviews=[],
        )
        watcher, clock = _watcher(source)

        outcome = watcher.watch(1, "owner/repo")

        assert outcome == NoOp("review_skipped")
        assert len(clock.sleeps) == 1
        # Baseline only; the skip short-circuits the second review query.
        assert source.review_calls == 1


class TestBaseline:
    def test_review_after_trigger_completes_at_baseline(self):
        source = InMemorySource(comments=[TRIGGER], reviews=[_review("1")])
        watcher, clock = _watcher(source)

        outcome = watcher.watch(1, "owner/repo")

        assert isinstance(outcome, Success)
        assert [r.id for r in outcome.reviews] == ["1"]
        assert clock.sleeps == []
        assert "already completed" in _output(watcher)

    def test_review_at_trigger_time_is_not_newer(self):
        # Strictly after: a review stamped exactly at the trigger does not count.
        source = InMemorySource(comments=[TRIGGER], review_sequence=[[_review("1", submitted_at=T0)]])
        watcher, clock = _watcher(source, interval_seconds=60, timeout_seconds=60)

        outcome = watcher.watch(1, "owner/repo")

        assert isinstance(outcome, Timeout)

    def test_all_current_reviews_returned(self):
        old = _review("1", state="COMMENTED", submitted_at=T0 - timedelta(days=1), comments=[ReviewComment(False, "x")])
        source = InMemorySource(comments=[TRIGGER], reviews=[old, _review("2")])
        watcher, _ = _watcher(source)

        outcome = watcher.watch(1, "owner/repo")

        assert [r.id for r in outcome.reviews] == ["1", "2"]

    def test_latest_filter_only_checks_newest_review(self):
        newer = _review("1", state="COMMENTED", comments=[ReviewComment(False, "x")])
        stale = _review("2", state="APPROVED", submitted_at=T0 - timedelta(days=1))
        source = InMemorySource(comments=[TRIGGER], reviews=[newer, stale])
        watcher, _ = _watcher(source, review_filter="latest", interval_seconds=60, timeout_seconds=60)

        assert isinstance(watcher.watch(1, "owner/repo"), Timeout)


class TestPolling:
    def test_new_review_detected_after_one_interval(self):
        source = InMemorySource(comments=[TRIGGER], review_sequence=[[], [_review("1")]])
        watcher, clock = _watcher(source)

        outcome = watcher.watch(1, "owner/repo")

        assert isinstance(outcome, Success)
        assert [r.id for r in outcome.reviews] == ["1"]
        assert clock.sleeps == [60]
        assert "New review detected" in _output(watcher)

    def test_returns_entire_list_not_just_delta(self):
        old = _review("1", submitted_at=T0 - timedelta(hours=1))
        source = InMemorySource(comments=[TRIGGER], review_sequence=[[old], [old], [old, _review("2")]])
        watcher, clock = _watcher(source)

        outcome = watcher.watch(1, "owner/repo")

        assert [r.id for r in outcome.reviews] == ["1", "2"]
        assert len(clock.sleeps) == 2
        assert "." in _output(watcher)

    def test_disappearing_review_is_not_new(self):
        old = _review("1", submitted_at=T0 - timedelta(hours=1))
        source = InMemorySource(comments=[TRIGGER], review_sequence=[[old], []])
        watcher, _ = _watcher(source, interval_seconds=60, timeout_seconds=120)

        assert isinstance(watcher.watch(1, "owner/repo"), Timeout)

    def test_query_failure_keeps_polling(self):
        source = InMemorySource(
            comments=[TRIGGER],
            review_sequence=[[], SourceError("gh: HTTP 502"), [_review("1")]],
        )
        watcher, clock = _watcher(source)

        outcome = watcher.watch(1, "owner/repo")

        assert isinstance(outcome, Success)
        assert len(clock.sleeps) == 2


class TestTimeout:
    def test_times_out_when_nothing_changes(self):
        source = InMemorySource(comments=[TRIGGER], reviews=[])
        watcher, clock = _watcher(source, interval_seconds=60, timeout_seconds=900)

        outcome = watcher.watch(1, "owner/repo")

        assert isinstance(outcome, Timeout)
        assert outcome.elapsed > 900
        assert exit_code_for(outcome) == 1
        # Checked between sleeps: 0, 60, ..., 900 all pass, 960 trips it.
        assert len(clock.sleeps) == 16
        assert "Timeout reached" in _output(watcher)

    def test_overshoot_bounded_by_one_interval(self):
        source = InMemorySource(comments=[TRIGGER], reviews=[])
        watcher, clock = _watcher(source, interval_seconds=45, timeout_seconds=100)

        outcome = watcher.watch(1, "owner/repo")

        assert 100 < outcome.elapsed <= 100 + 45


class TestChecks:
    def test_failed_checks_warned_when_enabled(self):
        source = InMemorySource(
            comments=[TRIGGER],
            reviews=[_review("1")],
            checks=[CheckRun("lint", "FAILURE"), CheckRun("tests", "SUCCESS"), CheckRun("build", "STARTUP_FAILURE")],
        )
        watcher, _ = _watcher(source, check_pr_checks=True)

        watcher.watch(1, "owner/repo")

        out = _output(watcher)
        assert "lint (FAILURE)" in out
        assert "build (STARTUP_FAILURE)" in out
        assert "tests" not in out

    def test_checks_not_queried_by_default(self):
        source = InMemorySource(comments=[TRIGGER], reviews=[_review("1")], checks=[CheckRun("lint", "FAILURE")])
        watcher, _ = _watcher(source)

        watcher.watch(1, "owner/repo")

        assert "lint" not in _output(watcher)


def test_exit_codes():
    assert exit_code_for(Success([])) == 0
    assert exit_code_for(NoOp("not_triggered")) == 0
    assert exit_code_for(Timeout(901.0)) == 1


def _gh_user(login):
    user = MagicMock()
    user.login = login
    return user


def test_api_transport_errors_do_not_abort_polling():
    client = MagicMock()
    pull = client.get_repo.return_value.get_pull.return_value
    pull.get_issue_comments.return_value = [MagicMock(user=_gh_user("alice"), body="/gemini review", created_at=T0)]
    bot_review = MagicMock(
        id=11,
        user=_gh_user("gemini-code-assist[bot]"),
        state="CHANGES_REQUESTED",
        body="",
        submitted_at=T0 + timedelta(seconds=5),
    )
    refused = requests.ConnectionError("Connection refused")
    # skip check, baseline, then two poll rounds of (skip check, fetch)
    pull.get_reviews.side_effect = [refused, refused, refused, refused, [], [bot_review]]
    client.requester.graphql_query.return_value = (
        {},
        {"data": {"repository": {"pullRequest": {"reviewThreads": {"pageInfo": {}, "nodes": []}}}}},
    )
    watcher, clock = _watcher(GithubApiSource("owner/repo", token="tok", client=client))

    outcome = watcher.watch(1, "owner/repo")

    assert isinstance(outcome, Success)
    assert [r.id for r in outcome.reviews] == ["11"]
    assert len(clock.sleeps) == 2
