"""Recover a JSON payload from a model's raw text response.

Models are asked to "respond with JSON only" but routinely wrap the answer
in prose or markdown fences, or emit near-JSON with trailing commas and
unbalanced brackets. Recovery is attempted in order, first success wins:

    fenced block / trimmed text → leading object or brace slice
    → json.loads → json_repair

If all attempts fail, ResponseUnparseableError carries the raw text so the
caller can still post it verbatim.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

import json_repair

from prmentor_core.errors import ResponseUnparseableError

logger = logging.getLogger(__name__)

_FENCE_OPEN_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_FIRST_FENCED_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_FENCE = "```"
_decoder = json.JSONDecoder()


def _first_fenced_block(text: str) -> str | None:
    match = _FIRST_FENCED_BLOCK_RE.search(text)
    return match.group(1).strip() if match else None


def _outer_fenced_interior(text: str) -> str | None:
    """Return the text between the first opening fence and the last closing fence.

    Needed when a JSON string value carries its own code block (e.g. a
    suggested fix in a comment body), which ends the first fenced block early.
    """
    opening = _FENCE_OPEN_RE.search(text)
    if not opening:
        return None
    closing = text.rfind(_FENCE)
    if closing < opening.end():
        return None
    return text[opening.end() : closing].strip()


def _is_clean_json(candidate: str) -> bool:
    try:
        json.loads(candidate)
    except ValueError:
        return False
    return True


def _fenced_candidate(text: str) -> str | None:
    first = _first_fenced_block(text)
    if first is None or _is_clean_json(first):
        return first
    outer = _outer_fenced_interior(text)
    if outer is not None and _is_clean_json(outer):
        return outer
    return first


def extract_json_candidate(raw: str | None) -> str:
    """Return the substring of ``raw`` most likely to be the JSON document."""
    if not raw:
        return ""
    fenced = _fenced_candidate(raw)
    candidate = fenced if fenced is not None else raw.strip()

    if _is_clean_json(candidate):
        return candidate

    first = candidate.find("{")
    if first == -1:
        return candidate
    # A complete object followed by prose, which may itself contain braces.
    try:
        _, end = _decoder.raw_decode(candidate, first)
    except ValueError:
        pass
    else:
        return candidate[first:end]

    last = candidate.rfind("}")
    if last > first:
        return candidate[first : last + 1]
    return candidate


def parse_model_response(raw: str | None) -> Any:
    """Parse the model's response into a JSON object or array.

    Raises ResponseUnparseableError when neither strict nor repair parsing
    yields a structured value.
    """
    candidate = extract_json_candidate(raw)
    if not candidate:
        raise ResponseUnparseableError(raw, "empty response")

    try:
        parsed = json.loads(candidate)
    except ValueError as e:
        strict_error = e
    else:
        if not isinstance(parsed, (dict, list)):
            raise ResponseUnparseableError(raw, f"expected a JSON object or array, got {type(parsed).__name__}")
        return parsed

    logger.debug("Strict JSON parse failed (%s); attempting repair", strict_error)
    try:
        repaired = json_repair.loads(candidate)
    except Exception as e:
        raise ResponseUnparseableError(raw, str(e)) from e

    # json_repair returns "" (or a bare scalar) when there is nothing structural to salvage.
    if not isinstance(repaired, (dict, list)):
        raise ResponseUnparseableError(raw, str(strict_error))
    return repaired
