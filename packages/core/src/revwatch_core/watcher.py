"""Review-polling watchdog.

Waits for the automated reviewer to respond to a review request:

    INIT → CHECK_TRIGGER → CHECK_SKIP → BASELINE ─┬─ DONE
                                                  └─ POLLING ─┬─ DONE
                                                              └─ TIMEOUT

"Nothing to wait for" (no trigger, reviewer declined) is a NoOp, a review
showing up is a Success, and only running out of time is a Timeout. The
watcher returns these as values; mapping them to exit codes is the CLI's job.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Union

from rich.console import Console

from revwatch_core.checks import failed_checks
from revwatch_core.config import WatchConfig
from revwatch_core.detectors import detect_trigger, is_skipped
from revwatch_core.models import EPOCH, PollState, Review
from revwatch_core.reviews import count_unresolved_threads, fetch_reviews
from revwatch_core.sources.base import ReviewSource

console = Console(stderr=True)
logger = logging.getLogger(__name__)

REVIEW_SKIPPED = "review_skipped"


@dataclass(frozen=True)
class Success:
    """The reviewer responded. ``reviews`` is the full current list, not just the new ones."""

    reviews: list[Review] = field(default_factory=list)


@dataclass(frozen=True)
class NoOp:
    reason: str  # "no_comments" | "not_triggered" | "review_skipped"


@dataclass(frozen=True)
class Timeout:
    elapsed: float


Outcome = Union[Success, NoOp, Timeout]


def exit_code_for(outcome: Outcome) -> int:
    return 1 if isinstance(outcome, Timeout) else 0


class ReviewWatcher:
    def __init__(
        self,
        source: ReviewSource,
        config: WatchConfig,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        out: Console | None = None,
    ):
        self.source = source
        self.config = config
        self._sleep = sleep
        self._clock = clock
        self._console = out or console

    def watch(self, pr_number: int, repo: str, assume_new: bool = False) -> Outcome:
        cfg = self.config
        state = PollState(start_time=self._clock())

        self._console.print(f"Monitoring PR #{pr_number} in {repo}")
        self._console.print(f"   Target Reviewer: {cfg.bot_name}")
        mode = "New PR (Immediate Check)" if assume_new else f"Manual Trigger ({cfg.trigger_phrase})"
        self._console.print(f"   Mode: {mode}")

        if cfg.check_pr_checks:
            self._warn_failed_checks(pr_number)

        if not assume_new:
            self._console.print("   Checking for trigger comment...")
            trigger = detect_trigger(self.source, pr_number, cfg.trigger_phrase)
            if trigger.comment is None:
                self._console.print("   [red]✖[/red] No comments found in this PR. Exiting.")
                return NoOp(trigger.reason)
            if not trigger.triggered:
                self._console.print(f"   [red]✖[/red] Latest comment does not contain '{cfg.trigger_phrase}'. Exiting.")
                return NoOp(trigger.reason)
            state.trigger_timestamp = trigger.timestamp
            self._console.print(f"   [green]✔[/green] Trigger found! (Timestamp: {trigger.timestamp.isoformat()})")
        else:
            state.trigger_timestamp = EPOCH
            self._console.print("   Skipping comment check (assuming new PR).")

        self._console.print("   Checking for AI skip conditions...")
        if self._skipped(pr_number):
            self._console.print("   AI is unable to review this PR. Exiting.")
            return NoOp(REVIEW_SKIPPED)

        self._console.print("   Fetching baseline reviews...")
        reviews = self._fetch(pr_number)
        state.remember(reviews)
        self._console.print(
            f"   Found {count_unresolved_threads(reviews)} unresolved items (across {len(reviews)} reviews)."
        )

        if self._completed_since(reviews, state):
            self._console.print("\n[green]✅ Review already completed (found review after trigger)![/green]")
            return Success(reviews)

        self._console.print("   Baseline established. Waiting for NEW reviews...")
        self._console.print(
            f"   Polling every {cfg.interval_seconds:g}s for {cfg.timeout_seconds / 60:g}m...",
        )
        return self._poll(pr_number, state)

    def _poll(self, pr_number: int, state: PollState) -> Outcome:
        cfg = self.config
        while True:
            # Checked between sleeps only; a query in flight is never interrupted.
            elapsed = self._clock() - state.start_time
            if elapsed > cfg.timeout_seconds:
                self._console.print("\n[red]❌ Timeout reached.[/red]")
                return Timeout(elapsed)

            self._sleep(cfg.interval_seconds)

            if self._skipped(pr_number):
                self._console.print("\n   AI reported it is unable to review. Exiting.")
                return NoOp(REVIEW_SKIPPED)

            current = self._fetch(pr_number)
            new_reviews = state.unseen(current)
            if new_reviews:
                self._console.print(
                    f"\n[green]🎉 New review detected![/green] "
                    f"({count_unresolved_threads(new_reviews)} new unresolved items)"
                )
                state.remember(current)
                return Success(current)

            self._console.print(".", end="")

    def _fetch(self, pr_number: int) -> list[Review]:
        return fetch_reviews(self.source, pr_number, self.config.bot_name, self.config.review_filter)

    def _skipped(self, pr_number: int) -> bool:
        return is_skipped(self.source, pr_number, self.config.bot_name, self.config.skip_phrases)

    def _completed_since(self, reviews: list[Review], state: PollState) -> bool:
        if not reviews:
            return False
        if self.config.review_filter == "latest":
            # Only the newest review decides whether the request was answered.
            return reviews[-1].submitted_at > state.trigger_timestamp
        return any(r.submitted_at > state.trigger_timestamp for r in reviews)

    def _warn_failed_checks(self, pr_number: int) -> None:
        failed = failed_checks(self.source, pr_number)
        if failed:
            self._console.print("[yellow]⚠️  Warning: The following PR checks have failed:[/yellow]")
            for check in failed:
                self._console.print(f"   - {check.name} ({check.state})")
