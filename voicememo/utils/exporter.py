"""Markdown and Obsidian export of completed memos."""

from __future__ import annotations

from typing import Any, Dict
from urllib.parse import quote

import jinja2

from voicememo.errors import InvalidMemoStateError
from voicememo.models import MemoStatus

_MARKDOWN_TEMPLATE = jinja2.Template(
    "# {{ title }}\n"
    "\n"
    "{% if created_date %}*Recorded {{ created_date }}*\n\n{% endif %}"
    "## Transcript\n"
    "\n"
    "{{ transcript }}\n"
    "\n"
    "## Insights\n"
    "\n"
    "{{ insights }}\n",
    keep_trailing_newline=True,
)


def _created_date(memo: Dict[str, Any]) -> str:
    return str(memo.get("created_at") or "")[:10]


def ensure_exportable(memo: Dict[str, Any]) -> None:
    if memo.get("status") != MemoStatus.COMPLETED.value:
        raise InvalidMemoStateError(
            "Memo has not finished processing",
            details=f"status is {memo.get('status')!r}",
        )


def memo_to_markdown(memo: Dict[str, Any]) -> str:
    """Render a completed memo as a markdown note."""
    ensure_exportable(memo)
    return _MARKDOWN_TEMPLATE.render(
        title=memo.get("title") or "Voice Memo Transcript",
        created_date=_created_date(memo),
        transcript=(memo.get("transcript") or "").strip(),
        insights=(memo.get("raw_insights") or "").strip(),
    )


def export_filename(memo: Dict[str, Any], prefix: str = "voice-memo") -> str:
    date = _created_date(memo)
    return f"{prefix}-{date}.md" if date else f"{prefix}.md"


def obsidian_note_name(memo: Dict[str, Any]) -> str:
    date = _created_date(memo)
    return f"Voice Memo {date}" if date else "Voice Memo"


def obsidian_uri(memo: Dict[str, Any], vault: str = "VoiceMemos") -> str:
    """Build an ``obsidian://new`` link that creates the note in ``vault``."""
    content = memo_to_markdown(memo)
    return (
        "obsidian://new"
        f"?vault={quote(vault, safe='')}"
        f"&name={quote(obsidian_note_name(memo), safe='')}"
        f"&content={quote(content, safe='')}"
    )
