from __future__ import annotations

import re
import time
import uuid
from typing import List, Optional, Set

from loguru import logger

from voicememo.models import ActionItem, ParsedInsights, Reference


def _section_pattern(heading: str, bullet: str) -> re.Pattern:
    # Heading line, then a contiguous run of column-0 bullet lines
    return re.compile(
        r"\*\*" + re.escape(heading) + r":\*\*\s*\n((?:" + bullet + r"[^\n]*\n?)+)"
    )


SUMMARY_PAT = _section_pattern("Transcript Summary", r"- ")
TODO_PAT = _section_pattern("To-Do List", r"- \[ \]")
FOLLOWUP_PAT = _section_pattern("Follow-Ups", r"- \[ \]")
REFERENCES_PAT = _section_pattern("References & Links", r"- ")

LINK_PAT = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_LEADING_BULLET = re.compile(r"^- ")
_LEADING_CHECKBOX = re.compile(r"^- \[ \]")


def generate_id(prefix: str) -> str:
    """Build an identifier from a role tag, epoch milliseconds and a random suffix."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def _section_lines(pattern: re.Pattern, text: str, marker: str) -> List[str]:
    m = pattern.search(text)
    if not m or not m.group(1):
        return []
    return [ln for ln in m.group(1).split("\n") if ln.strip().startswith(marker)]


def _action_items(lines: List[str], prefix: str, seen: Set[str]) -> List[ActionItem]:
    items: List[ActionItem] = []
    for ln in lines:
        item_id = generate_id(prefix)
        while item_id in seen:
            item_id = generate_id(prefix)
        seen.add(item_id)
        text = _LEADING_CHECKBOX.sub("", ln, count=1).strip()
        items.append(ActionItem(id=item_id, text=text, completed=False))
    return items


def _reference(line: str) -> Reference:
    text = _LEADING_BULLET.sub("", line, count=1).strip()
    link = LINK_PAT.search(text)
    if link:
        return Reference(text=link.group(1), url=link.group(2))
    return Reference(text=text, url=None)


def parse_insights(markdown: Optional[str]) -> ParsedInsights:
    """Extract summary, to-dos, follow-ups and references from insights markdown.

    Each section is the first ``**<Heading>:**`` line followed by consecutive
    bullet lines. To-do and follow-up bullets must already use checkbox syntax
    (see ``post_process_insights``). Missing sections yield empty lists.

    Never raises: anything unexpected is logged and an empty result returned.
    """
    try:
        seen: Set[str] = set()
        summary = [
            _LEADING_BULLET.sub("", ln, count=1).strip()
            for ln in _section_lines(SUMMARY_PAT, markdown, "- ")
        ]
        todo_items = _action_items(_section_lines(TODO_PAT, markdown, "- [ ]"), "todo", seen)
        follow_ups = _action_items(_section_lines(FOLLOWUP_PAT, markdown, "- [ ]"), "followup", seen)
        references = [_reference(ln) for ln in _section_lines(REFERENCES_PAT, markdown, "- ")]
        return ParsedInsights(
            summary=summary,
            todo_items=todo_items,
            follow_ups=follow_ups,
            references=references,
        )
    except Exception as e:
        logger.warning(f"Failed to parse insights, returning empty sections: {e}")
        return ParsedInsights()
