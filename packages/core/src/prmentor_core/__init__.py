"""Diff-to-context extraction and review-comment normalization for PR review bots."""
