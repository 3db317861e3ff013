"""CLI entry point for revwatch.

Commands:
  watch   wait for the automated reviewer to answer a review request
  checks  list failed CI checks on a pull request
"""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from revwatch_cli.commands.checks import checks_cmd
from revwatch_cli.commands.watch import watch_cmd

console = Console(stderr=True)


def build_source(config, repo: str):
    """Instantiate the review source named by ``config.source``.

    gh  → GhCliSource      (uses the local gh session and gh-pr-review extension)
    api → GithubApiSource  (requires a GitHub token)
    """
    if config.source == "api":
        from revwatch_core.sources.github_api import GithubApiSource

        if not config.github_token:
            raise click.UsageError(
                "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first, "
                "or use --source gh."
            )
        return GithubApiSource(repo, token=config.github_token)

    from revwatch_core.sources.gh_cli import GhCliSource

    return GhCliSource(repo, gh_path=config.gh_path)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(package_name="revwatch", prog_name="revwatch")
@click.option(
    "--config",
    "config_path",
    default=".revwatch.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="REVWATCH_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Wait for automated GitHub PR reviews."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(watch_cmd)
main.add_command(checks_cmd)
