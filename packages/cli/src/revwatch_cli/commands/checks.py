"""checks command: list failed CI checks on a pull request."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from revwatch_cli.commands._common import load_watch_config, open_source
from revwatch_core.checks import failed_checks

console = Console(stderr=True)


@click.command("checks")
@click.argument("pr_number", type=int)
@click.argument("repo")
@click.option(
    "--source",
    type=click.Choice(["gh", "api"]),
    default=None,
    help="Where to read PR data from. Overrides config file.",
)
@click.pass_context
def checks_cmd(ctx, pr_number: int, repo: str, source: str | None):
    """Show CI checks that failed on REPO's pull request PR_NUMBER."""
    config = load_watch_config(ctx, source=source)
    failed = failed_checks(open_source(config, repo), pr_number)
    if not failed:
        console.print("[green]No failed checks.[/green]")
        return

    table = Table(title=f"Failed checks: {repo}#{pr_number}", show_header=True, header_style="bold cyan")
    table.add_column("Check")
    table.add_column("State", style="red")
    for check in failed:
        table.add_row(check.name, check.state)
    console.print(table)
