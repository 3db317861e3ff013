from __future__ import annotations

import dataclasses

import click
import yaml


def load_watch_config(ctx: click.Context, **overrides):
    """Load WatchConfig for a subcommand, resolving the GitHub token for the api source."""
    from revwatch_cli.auth import resolve_github_token
    from revwatch_core.config import load_config

    config_path = (ctx.obj or {}).get("config_path", ".revwatch.yml")
    try:
        config = load_config(config_path, cli_overrides=overrides)
    except yaml.YAMLError as e:
        raise click.UsageError(f"Could not parse {config_path}: {e}")
    except (ValueError, TypeError) as e:
        raise click.UsageError(f"Invalid configuration in {config_path}: {e}")

    if config.source == "api" and not config.github_token:
        config = dataclasses.replace(config, github_token=resolve_github_token(config.gh_path))
    return config


def open_source(config, repo: str):
    """Build the review source, reporting a malformed repo name as a usage error."""
    from revwatch_cli.cli import build_source

    try:
        return build_source(config, repo)
    except ValueError as e:
        raise click.UsageError(str(e))
