"""Read the pull request context GitHub Actions provides to a workflow step."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class EventContext:
    repo: str
    pr_number: int


def load_event_context(event_path: str, repository: str | None) -> EventContext:
    """Parse the ``pull_request`` event payload at ``event_path``.

    ``repository`` is the ``owner/name`` value of GITHUB_REPOSITORY. Raises
    ValueError when the payload is not a pull_request event.
    """
    if not repository or "/" not in repository:
        raise ValueError("GITHUB_REPOSITORY must be set to 'owner/name'.")

    payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
    pr = payload.get("pull_request") if isinstance(payload, dict) else None
    if not pr:
        raise ValueError("Not a pull_request event.")

    return EventContext(repo=repository, pr_number=int(pr["number"]))
