"""Render line-numbered code excerpts of the changed files for the review prompt."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from prmentor_core.errors import MalformedPatchError
from prmentor_core.models import ChangedFile, FileStatus
from prmentor_core.utils.patch import build_context_window, parse_patch_line_numbers

logger = logging.getLogger(__name__)

# Downstream prompt assembly must never receive an empty context section.
NO_CHANGES_PLACEHOLDER = "No parseable changes found."


def split_source_lines(text: str) -> list[str]:
    """Split file text into the lines a unified diff numbers.

    Only a newline ends a line. Form feeds, U+2028 and the other separators
    str.splitlines() honours are part of the line text. A trailing newline
    does not start an extra line, and a CRLF ending loses its carriage return.
    """
    if not text:
        return []
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def render_snippet(filename: str, line_numbers: Iterable[int], lines: list[str] | None) -> str:
    """Return ``File: <filename>`` followed by one ``<n>: <text>`` row per line number.

    Line numbers outside ``lines`` (stale content) render with empty text.
    When ``lines`` is None only the header is emitted.
    """
    header = f"File: {filename}"
    if lines is None:
        return header

    rows = []
    for num in line_numbers:
        text = lines[num - 1] if 1 <= num <= len(lines) else ""
        rows.append(f"{num}: {text}")
    if not rows:
        return header
    return header + "\n" + "\n".join(rows)


def build_file_snippet(
    changed_file: ChangedFile,
    lines: list[str] | None,
    padding: int,
    max_lines: int,
) -> str | None:
    """Build the excerpt for one file, or None when the file has nothing addressable."""
    if not changed_file.patch or changed_file.status is FileStatus.REMOVED:
        return None

    try:
        changed_lines = parse_patch_line_numbers(changed_file.patch)
    except MalformedPatchError as e:
        logger.warning("Skipping %s: malformed patch (%s)", changed_file.filename, e)
        return None

    if not changed_lines:
        return None

    if lines is None:
        logger.warning("No content for %s; rendering filename only", changed_file.filename)
        return render_snippet(changed_file.filename, [], None)

    window = build_context_window(changed_lines, len(lines), padding, max_lines)
    return render_snippet(changed_file.filename, window, lines)


def build_snippets(
    changed_files: Iterable[ChangedFile],
    contents: Mapping[str, list[str] | None],
    padding: int,
    max_lines: int,
) -> str:
    """Concatenate per-file excerpts separated by a blank line.

    Each file is handled independently, so a bad patch in one file never
    affects the others. Returns NO_CHANGES_PLACEHOLDER when nothing renders.
    """
    snippets = []
    for changed_file in changed_files:
        snippet = build_file_snippet(changed_file, contents.get(changed_file.filename), padding, max_lines)
        if snippet:
            snippets.append(snippet)
    return "\n\n".join(snippets) or NO_CHANGES_PLACEHOLDER
