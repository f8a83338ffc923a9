"""Unified-diff coordinate mapping and context windows.

GitHub review comments are anchored to line numbers in the *new* version of
a file. A patch only tells us which new-file lines are visible in the diff;
everything else has to be derived from the hunk headers, so this module is
the single place that converts patch text into new-file coordinates.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from prmentor_core.errors import MalformedPatchError

_HUNK_HEADER_RE = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")


def parse_patch_line_numbers(patch: str | None) -> set[int]:
    """Return the new-file line numbers that are added or kept as context in ``patch``.

    Removed lines have no new-file coordinate and never advance the cursor.
    Raises MalformedPatchError when diff content appears before a hunk header
    has set the cursor; guessing coordinates there would anchor comments to
    the wrong code.
    """
    included: set[int] = set()
    if not patch:
        return included

    new_line: int | None = None
    seen_hunk = False

    for line in patch.split("\n"):
        if line.startswith("@@"):
            match = _HUNK_HEADER_RE.match(line)
            new_line = int(match.group(1)) if match else None
            seen_hunk = True
            continue

        # File headers of a full `git diff` precede the first hunk.
        if not seen_hunk and (line.startswith("+++ ") or line.startswith("--- ")):
            continue

        if not line or line[0] not in "+- ":
            continue  # "\ No newline at end of file", blank trailing lines, metadata

        if new_line is None:
            raise MalformedPatchError("Diff content found before a valid hunk header", line=line)

        if line[0] == "-":
            continue

        if new_line < 1:
            raise MalformedPatchError(f"Hunk addresses invalid new-file line {new_line}", line=line)
        included.add(new_line)
        new_line += 1

    return included


def build_context_window(
    line_numbers: Iterable[int],
    total_lines: int,
    padding: int,
    max_lines: int,
) -> list[int]:
    """Pad each line by ``padding`` on both sides and keep the result inside the file.

    The result is strictly ascending and never longer than ``max_lines``.
    When the cap bites, the highest-numbered lines are dropped so the
    remaining excerpt is still a prefix of the full window.
    """
    if padding < 0:
        raise ValueError(f"padding must be >= 0, got {padding}")
    if max_lines < 0:
        raise ValueError(f"max_lines must be >= 0, got {max_lines}")
    if total_lines <= 0:
        return []

    window: set[int] = set()
    for n in line_numbers:
        low = max(1, n - padding)
        high = min(total_lines, n + padding)
        window.update(range(low, high + 1))

    return sorted(window)[:max_lines]
