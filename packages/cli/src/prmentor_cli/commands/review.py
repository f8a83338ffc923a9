"""review command — run AI review on a pull request."""

from __future__ import annotations

import os

import click
from rich.console import Console

from prmentor_core.reviewer import run_review

console = Console()


@click.command("review")
@click.option("--repo", default=None, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, default=None, help="Pull request number.")
@click.option(
    "--event-path",
    default=None,
    envvar="GITHUB_EVENT_PATH",
    type=click.Path(exists=True, dir_okay=False),
    help="GitHub Actions event payload. Supplies --repo and --pr when they are omitted.",
)
@click.option(
    "--actor",
    default=None,
    envvar="GITHUB_ACTOR",
    help="User who triggered the review. Self-reviews are posted as COMMENT.",
)
@click.option(
    "--model",
    type=click.Choice(["anthropic", "openai"]),
    default=None,
    help="AI model provider. Overrides config file.",
)
@click.option(
    "--shadow",
    "-s",
    is_flag=True,
    help="Dry-run mode: print the review without posting to GitHub.",
)
@click.pass_context
def review_cmd(
    ctx,
    repo: str | None,
    pr_number: int | None,
    event_path: str | None,
    actor: str | None,
    model: str | None,
    shadow: bool,
):
    """Review a pull request and post feedback as inline comments.

    \b
    Required environment variables:
      GITHUB_TOKEN         GitHub token (or use gh CLI)
      ANTHROPIC_API_KEY    Required when using --model anthropic
      OPENAI_API_KEY       Required when using --model openai
    """
    from prmentor_cli.actions import load_event_context
    from prmentor_cli.auth import resolve_github_token
    from prmentor_core.config import load_config

    config_path = ctx.obj.get("config_path", ".prmentor.yml") if ctx.obj else ".prmentor.yml"
    try:
        config = load_config(config_path, cli_overrides={"model": model})
    except ValueError as e:
        raise click.UsageError(str(e))

    if repo is None or pr_number is None:
        if not event_path:
            raise click.UsageError("Pass --repo and --pr, or run inside GitHub Actions with GITHUB_EVENT_PATH set.")
        try:
            event = load_event_context(event_path, repo or os.environ.get("GITHUB_REPOSITORY"))
        except ValueError as e:
            raise click.UsageError(str(e))
        repo = event.repo
        pr_number = pr_number if pr_number is not None else event.pr_number

    token = resolve_github_token()
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    config["github_token"] = token

    if config["model"] == "anthropic" and not config.get("anthropic_api_key"):
        raise click.UsageError("ANTHROPIC_API_KEY environment variable is not set.")
    if config["model"] == "openai" and not config.get("openai_api_key"):
        raise click.UsageError("OPENAI_API_KEY environment variable is not set.")

    try:
        summary = run_review(repo=repo, pr_number=pr_number, config=config, actor=actor, shadow=shadow)
    except ValueError as e:
        raise click.ClickException(str(e))

    if summary is not None:
        console.print(
            f"[bold]{summary.repo}#{summary.pr_number}[/bold]: {summary.event} "
            f"({len(summary.comments)} inline comment(s), posted as {summary.posted_as})"
        )
