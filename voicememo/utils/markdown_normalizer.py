from __future__ import annotations

import re
from enum import Enum

CHECKBOX_MARKER = "- [ ]"

_BULLET_RE = re.compile(r"^(\s*)-\s+")

TODO_HEADING = "To-Do List"
FOLLOWUP_HEADING = "Follow-Ups"


class _Section(str, Enum):
    NONE = "none"
    IN_TODO = "in_todo"
    IN_FOLLOWUP = "in_followup"


def count_checkboxes(text: str) -> int:
    """Count unchecked checkbox markers (``- [ ]``) anywhere in ``text``."""
    if not text:
        return 0
    return text.count(CHECKBOX_MARKER)


def _is_heading(line: str, title: str) -> bool:
    return (
        f"**{title}**" in line
        or line == f"**{title}:**"
        or line.strip() == f"{title}:"
    )


def _next_state(line: str, state: _Section) -> tuple[_Section, bool]:
    """Return (new_state, is_heading_line) for a single line."""
    if _is_heading(line, TODO_HEADING):
        return _Section.IN_TODO, True
    if _is_heading(line, FOLLOWUP_HEADING):
        return _Section.IN_FOLLOWUP, True
    if "**" in line:
        return _Section.NONE, True
    return state, False


def _to_checkbox(line: str) -> str:
    stripped = line.strip()
    if not stripped.startswith("- ") or stripped.startswith(CHECKBOX_MARKER):
        return line
    return _BULLET_RE.sub(lambda m: f"{m.group(1)}{CHECKBOX_MARKER} ", line, count=1)


def format_markdown_checkboxes(text: str, model_tag: str) -> str:
    """Rewrite plain bullets as checkboxes inside the To-Do List and Follow-Ups sections.

    - Lines are scanned once, top to bottom, with a three-state machine
      (none / in_todo / in_followup)
    - Recognized headings are checked before the generic "any bold text"
      rule, which closes both sections
    - Heading lines themselves are never rewritten
    - Bullets already carrying ``- [ ]`` are left alone

    ``model_tag`` names the model that produced ``text``; all models are
    currently formatted the same way.
    """
    if not text:
        return text

    state = _Section.NONE
    out = []
    for line in text.split("\n"):
        state, is_heading = _next_state(line, state)
        if not is_heading and state is not _Section.NONE:
            line = _to_checkbox(line)
        out.append(line)
    return "\n".join(out)


def post_process_insights(insights: str, model_tag: str) -> str:
    """Normalize model-generated insights markdown.

    If the document already contains at least one checkbox anywhere it is
    returned untouched; otherwise bullets in the To-Do List and Follow-Ups
    sections are converted to checkboxes.
    """
    if count_checkboxes(insights) > 0:
        return insights
    return format_markdown_checkboxes(insights, model_tag)
