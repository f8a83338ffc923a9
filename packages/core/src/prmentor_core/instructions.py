"""Course-module detection, instruction loading and prompt assembly.

Repositories reviewed by prmentor are laid out as ``NN-module/task/...``.
The modules touched by a PR select sections of a local instructions
document (``## NN-module`` headings), and every touched task contributes
its README. Both are passed to the model as plain context text.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path

from prmentor_core.models import ChangedFile

logger = logging.getLogger(__name__)

MODULE_ID_RE = re.compile(r"^[0-9]{2}-[\w-]+$")
_MODULE_SECTION_RE = re.compile(r"##\s+([0-9]{2}-[\w-]+)[\s\S]*?(?=\n##\s+[0-9]{2}-|\Z)")


def detect_modules(changed_files: Iterable[ChangedFile]) -> list[str]:
    """Return module directories touched by the change, in first-seen order."""
    modules: dict[str, None] = {}
    for f in changed_files:
        root = f.filename.split("/")[0]
        if MODULE_ID_RE.match(root):
            modules.setdefault(root)
    return list(modules)


def detect_tasks(changed_files: Iterable[ChangedFile]) -> list[str]:
    """Return ``module/task`` directories touched by the change.

    A file sitting directly in a module directory does not belong to a task.
    """
    tasks: dict[str, None] = {}
    for f in changed_files:
        parts = f.filename.split("/")
        if len(parts) >= 3 and MODULE_ID_RE.match(parts[0]) and parts[1]:
            tasks.setdefault(f"{parts[0]}/{parts[1]}")
    return list(tasks)


def parse_module_sections(text: str) -> dict[str, str]:
    """Split an instructions document into ``{module_id: section_text}``."""
    return {m.group(1): m.group(0).strip() for m in _MODULE_SECTION_RE.finditer(text)}


def load_module_instructions(path: str | None, modules: Iterable[str]) -> str:
    """Return the instruction sections for ``modules``, joined by blank lines.

    A missing or unreadable instructions file is not fatal: the review runs
    without module context.
    """
    if not path:
        return ""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("Could not load module instructions from %s: %s", path, e)
        return ""

    sections = parse_module_sections(text)
    return "\n\n".join(sections[m] for m in modules if m in sections)


def build_prompt(module_context: str, task_context: str, snippets: str, language: str = "English") -> str:
    return f"""### Pull Request Code Review

#### Role
You are an experienced developer and mentor reviewing a student's assignment.
Write every comment and the overall feedback in {language}.
Be personal and concise; explain why a change would be better rather than only pointing it out.

#### Scope
- The code has already passed the automated tests; focus on logic, readability and best practices.
- Only review what has been implemented. Do not suggest new features, libraries or services.
- Do not comment on formatting or cosmetic whitespace.
- Prefer single-line comments; use a line range only when the remark covers a block.

#### Module context
{module_context or "(none)"}

#### Task descriptions
{task_context or "(none)"}

#### Changed files (with line numbers)
{snippets}

#### Response format
Respond with JSON only, using exactly this structure:
{{
  "conclusion": "APPROVE" or "REQUEST_CHANGES",
  "general_comment": "Overall impression of the work",
  "comments": [
    {{
      "filepath": "path/to/file.js",
      "start_line": 10,
      "end_line": 15,
      "comment": "Your remark about this line or range"
    }}
  ]
}}

Omit "end_line" for single-line comments. Use the line numbers shown above.
Use "REQUEST_CHANGES" only when there are critical issues to address."""
