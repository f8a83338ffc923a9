from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from github import Github, GithubException

from prmentor_core.comments import format_fallback_markdown
from prmentor_core.errors import ContentUnavailableError
from prmentor_core.models import ChangedFile, FileStatus, ReviewDraft
from prmentor_core.utils.snippets import split_source_lines

logger = logging.getLogger(__name__)


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def get_changed_files(pr) -> list[ChangedFile]:
    """Return every file changed by the PR; PyGithub paginates transparently."""
    return [ChangedFile.from_github(f) for f in pr.get_files()]


def read_text(repo, path: str, ref: str) -> str:
    """Return the text of ``path`` at ``ref``.

    Raises ContentUnavailableError for deleted files, directories and
    content that is not UTF-8 text.
    """
    try:
        contents = repo.get_contents(path, ref=ref)
    except GithubException as e:
        raise ContentUnavailableError(path, str(e)) from e
    if isinstance(contents, list):
        raise ContentUnavailableError(path, "path is a directory")
    try:
        return contents.decoded_content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ContentUnavailableError(path, "not UTF-8 text") from e
    except AssertionError as e:
        # PyGithub asserts on unsupported encodings (files over 1 MB come back with encoding "none").
        raise ContentUnavailableError(path, str(e)) from e


def fetch_text(repo, path: str, ref: str) -> str | None:
    """Like read_text, but returns None so callers carry on with whatever context they have."""
    try:
        return read_text(repo, path, ref)
    except ContentUnavailableError as e:
        logger.warning("%s (ref %s)", e, ref[:7])
        return None


def fetch_file_lines(repo, path: str, ref: str) -> list[str] | None:
    text = fetch_text(repo, path, ref)
    if text is None:
        return None
    return split_source_lines(text)


def fetch_all_file_contents(
    repo,
    files: list[ChangedFile],
    ref: str,
    max_workers: int = 8,
) -> dict[str, list[str] | None]:
    """Fetch full content for every non-removed file concurrently.

    Each fetch is independent; a missing file maps to None instead of failing
    the batch.
    """
    wanted = [f.filename for f in files if f.status is not FileStatus.REMOVED]
    if not wanted:
        return {}
    with ThreadPoolExecutor(max_workers=min(max_workers, len(wanted))) as pool:
        results = pool.map(lambda path: fetch_file_lines(repo, path, ref), wanted)
        return dict(zip(wanted, results))


def submit_review(pr, draft: ReviewDraft) -> str:
    """Post ``draft`` as a structured review, falling back to a single issue comment.

    GitHub rejects the whole review if any inline anchor is outside the diff,
    which local validation cannot fully rule out. Returns "review" or
    "fallback" depending on what was posted.
    """
    try:
        pr.create_review(
            body=draft.body,
            event=draft.event.value,
            comments=[c.to_api() for c in draft.comments],
        )
        return "review"
    except GithubException as e:
        logger.error("Failed to create structured review, falling back to a plain comment: %s", e)
        pr.create_issue_comment(format_fallback_markdown(draft))
        return "fallback"


def post_raw_feedback(pr, raw: str) -> None:
    """Post unparseable model output verbatim so the feedback is not lost."""
    pr.create_issue_comment(f"**Automated review (unstructured):**\n\n{raw}")
