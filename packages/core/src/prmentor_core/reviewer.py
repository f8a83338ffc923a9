"""Core PR review orchestration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from github import GithubException
from rich.console import Console

from prmentor_core.comments import build_review
from prmentor_core.errors import ResponseUnparseableError
from prmentor_core.gh.pull_request import (
    fetch_all_file_contents,
    fetch_text,
    get_changed_files,
    get_pull,
    get_repo,
    post_raw_feedback,
    submit_review,
)
from prmentor_core.instructions import build_prompt, detect_modules, detect_tasks, load_module_instructions
from prmentor_core.models import ReviewDraft, ReviewVerdict, ValidatedComment
from prmentor_core.providers.anthropic import AnthropicReviewer
from prmentor_core.providers.openai import OpenAIReviewer
from prmentor_core.response import parse_model_response
from prmentor_core.utils.snippets import build_snippets

console = Console()
logger = logging.getLogger(__name__)


@dataclass
class ReviewSummary:
    """Result returned by run_review.

    ``posted_as`` records what ended up on the PR: "review" (structured
    review), "fallback" (flattened comment after the review was rejected),
    "raw" (unparseable model text posted verbatim) or "shadow" (nothing posted).
    """

    repo: str
    pr_number: int
    head_sha: str
    event: str  # "APPROVE" | "COMMENT" | "REQUEST_CHANGES"
    posted_as: str
    comments: list[ValidatedComment] = field(default_factory=list)


def _get_reviewer(config: dict):
    model = config["model"]
    model_name = config.get("model_name")
    if model == "anthropic":
        return AnthropicReviewer(api_key=config["anthropic_api_key"], model_name=model_name)
    if model == "openai":
        return OpenAIReviewer(api_key=config["openai_api_key"], model_name=model_name)
    raise ValueError(f"Unknown model provider: {model!r}. Choose 'anthropic' or 'openai'.")


def load_task_instructions(repo, tasks: list[str], ref: str) -> str:
    """Concatenate the README of every touched task, skipping tasks without one."""
    prompts = []
    for task in tasks:
        content = fetch_text(repo, f"{task}/README.md", ref)
        if content:
            prompts.append(f"### Task: {task}\n{content}")
    return "\n\n".join(prompts)


def print_shadow_review(draft: ReviewDraft) -> None:
    """Print a review to the terminal without posting it to GitHub."""
    _event_color = {"APPROVE": "green", "COMMENT": "yellow", "REQUEST_CHANGES": "red"}
    color = _event_color.get(draft.event.value, "white")
    console.print(f"\n[bold]Shadow review — [{color}]{draft.event.value}[/{color}] (not posted)[/bold]\n")
    console.print(draft.body)
    console.print()
    for c in draft.comments:
        where = f"lines {c.start_line}-{c.line}" if c.is_range else f"line {c.line}"
        console.print(f"[bold cyan]{c.path}[/bold cyan]  {where}")
        console.print(f"  {c.body}")
        console.print()


def run_review(
    repo: str,
    pr_number: int,
    config: dict,
    actor: str | None = None,
    shadow: bool = False,
    repo_obj=None,
) -> ReviewSummary | None:
    """Run the full PR review pipeline.

    Returns None when there was nothing to do: no course modules touched, the
    model never answered, or the model's answer normalized to an empty review.
    """
    this_repo = repo_obj if repo_obj is not None else get_repo(repo, token=config["github_token"])

    try:
        this_pr = get_pull(this_repo, pr_number)
    except GithubException:
        raise ValueError(f"PR #{pr_number} not found in {repo}.")

    head_sha = this_pr.head.sha
    author = this_pr.user.login if this_pr.user is not None else None

    console.print(f"Starting review for {repo}#{pr_number} at {head_sha[:7]}")
    changed_files = get_changed_files(this_pr)

    modules = detect_modules(changed_files)
    if not modules and config.get("require_modules", True):
        console.print("[yellow]No relevant coursework files detected. Skipping.[/yellow]")
        return None

    task_context = load_task_instructions(this_repo, detect_tasks(changed_files), head_sha)
    module_context = load_module_instructions(config.get("instructions"), modules)

    contents = fetch_all_file_contents(this_repo, changed_files, head_sha, max_workers=config.get("fetch_workers", 8))
    snippets = build_snippets(
        changed_files,
        contents,
        padding=config["context_padding"],
        max_lines=config["max_lines_per_file"],
    )
    prompt = build_prompt(module_context, task_context, snippets, language=config.get("language", "English"))

    reviewer = _get_reviewer(config)
    console.print(f"Sending prompt to {reviewer.model}...")
    raw = reviewer.review(prompt)
    if raw is None:
        console.print("[red]The model did not return a response. No review posted.[/red]")
        return None

    try:
        payload = parse_model_response(raw)
    except ResponseUnparseableError as e:
        logger.warning("Model response could not be parsed (%s); posting it verbatim", e)
        if shadow:
            console.print("[yellow]Shadow mode: unparseable response would be posted verbatim:[/yellow]")
            console.print(e.raw)
            posted_as = "shadow"
        else:
            post_raw_feedback(this_pr, e.raw)
            posted_as = "raw"
        return ReviewSummary(
            repo=repo,
            pr_number=pr_number,
            head_sha=head_sha,
            event=ReviewVerdict.COMMENT.value,
            posted_as=posted_as,
        )

    draft = build_review(payload, contents, changed_files, actor=actor, author=author)
    if draft is None:
        console.print("[yellow]Empty review generated. Skipping.[/yellow]")
        return None

    if shadow:
        print_shadow_review(draft)
        posted_as = "shadow"
    else:
        console.print(f"Submitting review: {draft.event.value} with {len(draft.comments)} inline comment(s).")
        posted_as = submit_review(this_pr, draft)
        if posted_as == "review":
            console.print("[green]Review successfully created.[/green]")
        else:
            console.print("[yellow]Structured review rejected; posted as a single comment.[/yellow]")

    return ReviewSummary(
        repo=repo,
        pr_number=pr_number,
        head_sha=head_sha,
        event=draft.event.value,
        posted_as=posted_as,
        comments=draft.comments,
    )
