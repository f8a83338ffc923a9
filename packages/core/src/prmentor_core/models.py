"""Data model shared by the review pipeline.

Everything here is transient: rebuilt on every run, never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class FileStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"

    @classmethod
    def parse(cls, value: str | None) -> FileStatus:
        """Map a GitHub file status onto the four statuses the pipeline cares about.

        GitHub also reports "copied", "changed" and "unchanged"; for line
        addressing those behave like a modification.
        """
        try:
            return cls(value)
        except ValueError:
            return cls.MODIFIED


class ReviewVerdict(str, Enum):
    APPROVE = "APPROVE"
    REQUEST_CHANGES = "REQUEST_CHANGES"
    COMMENT = "COMMENT"


@dataclass(frozen=True)
class ChangedFile:
    """One file of a change-set as reported by the diff source."""

    filename: str
    status: FileStatus = FileStatus.MODIFIED
    patch: str | None = None

    @classmethod
    def from_github(cls, file) -> ChangedFile:
        """Build from a PyGithub ``File`` (or anything with the same attributes)."""
        return cls(
            filename=file.filename,
            status=FileStatus.parse(getattr(file, "status", None)),
            patch=getattr(file, "patch", None) or None,
        )


@dataclass(frozen=True)
class ValidatedComment:
    """An inline comment that is safe to send to the review API.

    ``line`` is the anchor line. For a range it is the last line and
    ``start_line`` holds the first one.
    """

    path: str
    body: str
    line: int
    start_line: int | None = None

    @property
    def is_range(self) -> bool:
        return self.start_line is not None

    def to_api(self) -> dict:
        payload = {"path": self.path, "body": self.body, "line": self.line, "side": "RIGHT"}
        if self.start_line is not None:
            payload["start_line"] = self.start_line
            payload["start_side"] = "RIGHT"
        return payload


@dataclass
class ReviewDraft:
    """A normalized review, ready for submission."""

    event: ReviewVerdict
    body: str
    general_comment: str | None = None
    comments: list[ValidatedComment] = field(default_factory=list)
    # Dict-shaped entries exactly as the model produced them; used only for
    # the flattened fallback comment.
    raw_comments: list[dict] = field(default_factory=list)
