"""Turn the model's proposed review into API-ready, bounds-checked records.

Everything coming out of the model is untrusted: fields may be missing,
mistyped or point past the end of a file. Every field is re-checked here
before it is used, and a bad entry is dropped on its own; one wrong line
number must never cost the whole review.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from prmentor_core.models import ChangedFile, ReviewDraft, ReviewVerdict, ValidatedComment

logger = logging.getLogger(__name__)

DEFAULT_REVIEW_BODY = "Automated Review (No summary provided)"


def _coerce_line(value: Any) -> int | None:
    """Coerce a model-supplied line number to int, or None if it is not integral.

    Accepts ints, integral floats and numeric strings ("12", " 12 ", "12.0").
    Booleans are rejected even though they are ints in Python.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        if number != number or number in (float("inf"), float("-inf")) or not number.is_integer():
            return None
        return int(number)
    return None


def _body_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def normalize_comment(
    entry: Any,
    file_contents: Mapping[str, list[str] | None],
    changed_paths: set[str] | frozenset[str],
) -> ValidatedComment | None:
    """Validate a single model comment; return None when it must be dropped."""
    if not isinstance(entry, Mapping):
        logger.debug("Dropping comment: not an object (%r)", entry)
        return None

    path = entry.get("filepath")
    if not isinstance(path, str) or path not in changed_paths:
        logger.debug("Dropping comment: %r is not a changed file", path)
        return None

    start = _coerce_line(entry.get("start_line"))
    if start is None or start < 1:
        logger.debug("Dropping comment on %s: invalid start_line %r", path, entry.get("start_line"))
        return None

    lines = file_contents.get(path)
    # Unknown content means the length bound cannot be checked, so skip it.
    line_count = len(lines) if lines is not None else None
    if line_count is not None and start > line_count:
        logger.debug("Dropping comment on %s: line %d beyond end of file (%d lines)", path, start, line_count)
        return None

    body = _body_text(entry.get("comment"))

    end = _coerce_line(entry.get("end_line"))
    if end is not None and end > start:
        if line_count is not None:
            end = min(end, line_count)
        if end > start:
            return ValidatedComment(path=path, body=body, line=end, start_line=start)

    return ValidatedComment(path=path, body=body, line=start)


def normalize_comments(
    raw_comments: Any,
    file_contents: Mapping[str, list[str] | None],
    changed_paths: Iterable[str],
) -> list[ValidatedComment]:
    """Validate every proposed comment, preserving order and dropping invalid ones."""
    if not isinstance(raw_comments, list):
        if raw_comments is not None:
            logger.debug("Ignoring comments payload of type %s", type(raw_comments).__name__)
        return []

    known_paths = frozenset(changed_paths)
    results = []
    for entry in raw_comments:
        comment = normalize_comment(entry, file_contents, known_paths)
        if comment is not None:
            results.append(comment)

    dropped = len(raw_comments) - len(results)
    if dropped:
        logger.info("Dropped %d of %d proposed comment(s) that failed validation", dropped, len(raw_comments))
    return results


def determine_event(conclusion: Any, actor: str | None = None, author: str | None = None) -> ReviewVerdict:
    """Choose the review event from the model's conclusion.

    Only the exact literal "REQUEST_CHANGES" blocks; anything else approves.
    GitHub does not let authors approve or block their own pull requests, so
    a self-review is always downgraded to a plain COMMENT.
    """
    event = ReviewVerdict.REQUEST_CHANGES if conclusion == "REQUEST_CHANGES" else ReviewVerdict.APPROVE
    if actor and actor == author:
        event = ReviewVerdict.COMMENT
    return event


def build_review(
    payload: Any,
    file_contents: Mapping[str, list[str] | None],
    changed_files: Iterable[ChangedFile],
    actor: str | None = None,
    author: str | None = None,
) -> ReviewDraft | None:
    """Shape a recovered model payload into a ReviewDraft.

    Returns None when there is neither a summary nor a single valid inline
    comment. Posting an empty review would only add noise to the PR.
    """
    if isinstance(payload, list):
        payload = {"comments": payload}
    elif not isinstance(payload, Mapping):
        payload = {}

    general = payload.get("general_comment")
    general = general.strip() if isinstance(general, str) and general.strip() else None

    raw_comments = payload.get("comments")
    comments = normalize_comments(raw_comments, file_contents, (f.filename for f in changed_files))

    if general is None and not comments:
        logger.info("Empty review generated; nothing to submit")
        return None

    return ReviewDraft(
        event=determine_event(payload.get("conclusion"), actor, author),
        body=general or DEFAULT_REVIEW_BODY,
        general_comment=general,
        comments=comments,
        raw_comments=[c for c in raw_comments if isinstance(c, Mapping)] if isinstance(raw_comments, list) else [],
    )


def format_fallback_markdown(draft: ReviewDraft) -> str:
    """Flatten a review into one Markdown comment for when the structured review is rejected."""
    lines = [f"**Review Result:** {draft.event.value}"]
    if draft.general_comment:
        lines.append(f"\n**Overview:** {draft.general_comment}")
    if draft.raw_comments:
        lines.append("\n**Inline Comments:**")
        for c in draft.raw_comments:
            location = f"{c.get('filepath', '?')}:{c.get('start_line', '?')}"
            end = c.get("end_line")
            if end is not None and end != c.get("start_line"):
                location += f"-{end}"
            lines.append(f"- {location} {_body_text(c.get('comment'))}")
    return "\n".join(lines)
