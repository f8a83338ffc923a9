"""Error taxonomy for the review pipeline.

Only ResponseUnparseableError is expected to reach the caller of the pipeline.
Per-file and per-comment problems are contained where they happen: a file
with a malformed patch is skipped, a bad comment entry is dropped, and an
empty review is a ``None`` return rather than an exception.
"""

from __future__ import annotations


class ReviewPipelineError(Exception):
    """Base class for every error raised by prmentor_core."""


class MalformedPatchError(ReviewPipelineError, ValueError):
    """A patch has diff content before any hunk header established a line cursor."""

    def __init__(self, message: str, line: str | None = None):
        super().__init__(message)
        self.line = line


class ContentUnavailableError(ReviewPipelineError):
    """Full file text could not be retrieved (deleted, binary, unreadable)."""

    def __init__(self, path: str, reason: str = ""):
        super().__init__(f"Content unavailable for {path}" + (f": {reason}" if reason else ""))
        self.path = path
        self.reason = reason


class ResponseUnparseableError(ReviewPipelineError, ValueError):
    """Model output survived neither strict nor repair parsing.

    The untouched model text is kept on ``raw`` so the caller can still post
    it as unstructured feedback.
    """

    def __init__(self, raw: str | None, reason: str = ""):
        super().__init__(f"Failed to parse model response: {reason}" if reason else "Failed to parse model response")
        self.raw = raw or ""
        self.reason = reason
