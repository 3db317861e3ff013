"""watch command: wait for the automated reviewer to answer a review request."""

from __future__ import annotations

import json
import logging

import click
from rich.console import Console

from revwatch_cli.commands._common import load_watch_config, open_source
from revwatch_core.watcher import ReviewWatcher, Success, exit_code_for

console = Console(stderr=True)
logger = logging.getLogger(__name__)


def _render(outcome: Success, envelope: bool) -> str:
    """Serialize reviews as a single compact JSON line for the calling process."""
    reviews = [r.to_dict() for r in outcome.reviews]
    payload = {"reviews": reviews} if envelope else reviews
    return json.dumps(payload, separators=(",", ":"))


@click.command("watch")
@click.argument("pr_number", type=int)
@click.argument("repo")
@click.option("--new", "assume_new", is_flag=True, help="Assume a fresh PR; skip the trigger-comment check.")
@click.option(
    "--source",
    type=click.Choice(["gh", "api"]),
    default=None,
    help="Where to read PR data from. Overrides config file.",
)
@click.pass_context
def watch_cmd(ctx, pr_number: int, repo: str, assume_new: bool, source: str | None):
    """Wait until REPO's pull request PR_NUMBER gets a new automated review.

    \b
    stdout   one JSON line with the actionable reviews, only when one arrived
    stderr   progress and diagnostics
    exit 0   review found, or nothing to wait for
    exit 1   timed out, or an unexpected error
    """
    config = load_watch_config(ctx, source=source)
    reviewer_source = open_source(config, repo)

    console.print("--- Review Poller Starting ---")
    try:
        outcome = ReviewWatcher(reviewer_source, config).watch(pr_number, repo, assume_new=assume_new)
    except Exception:
        logger.exception("Fatal error while watching PR #%s", pr_number)
        ctx.exit(1)

    if isinstance(outcome, Success):
        click.echo(_render(outcome, config.output_envelope))
    ctx.exit(exit_code_for(outcome))
