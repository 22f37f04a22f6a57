"""
Data models for the Voice Memo Insights service.
"""

from typing import Dict, List, Optional, Any
from datetime import datetime, timedelta
from enum import Enum
from pydantic import BaseModel, Field, validator


def utc_now_iso(offset_seconds: float = 0) -> str:
    """ISO-8601 UTC timestamp with a trailing Z, optionally shifted forward."""
    moment = datetime.utcnow() + timedelta(seconds=offset_seconds)
    return moment.isoformat() + "Z"


class MemoStatus(str, Enum):
    """Processing status of a memo."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class TokenUsage(BaseModel):
    """Token usage reported by a generation call."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    # Echo the max_tokens limit used for this completion
    max_tokens: Optional[int] = None


class ActionItem(BaseModel):
    """A to-do or follow-up extracted from the insights."""
    id: str
    text: str
    completed: bool = False


class Reference(BaseModel):
    """A reference line, optionally carrying a link target."""
    text: str
    url: Optional[str] = None


class ParsedInsights(BaseModel):
    """Structured sections extracted from the insights markdown."""
    summary: List[str] = Field(default_factory=list)
    todo_items: List[ActionItem] = Field(default_factory=list)
    follow_ups: List[ActionItem] = Field(default_factory=list)
    references: List[Reference] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.summary or self.todo_items or self.follow_ups or self.references)


class MemoErrorInfo(BaseModel):
    """Error descriptor stored on a failed memo."""
    code: str
    message: str
    details: Optional[str] = None


class Memo(BaseModel):
    """One processed voice note: transcript, insights and status."""
    id: str
    status: MemoStatus = MemoStatus.PROCESSING.value
    created_at: str = Field(default_factory=utc_now_iso)
    estimated_completion_time: Optional[str] = None
    completed_at: Optional[str] = None
    title: str = "Untitled memo"
    model: str = "openai"
    file_path: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    transcript: Optional[str] = None
    raw_insights: Optional[str] = None
    raw_format: Optional[str] = None
    insights: Optional[ParsedInsights] = None
    audio_duration: Optional[float] = None
    error: Optional[MemoErrorInfo] = None

    class Config:
        use_enum_values = True

    @validator('title')
    def title_not_blank(cls, v):
        if not v or not v.strip():
            return "Untitled memo"
        return v.strip()

    @property
    def is_terminal(self) -> bool:
        return self.status in (MemoStatus.COMPLETED.value, MemoStatus.FAILED.value)

    def summary_view(self) -> Dict[str, Any]:
        """Fields returned when a memo is first accepted."""
        return {
            "id": self.id,
            "status": self.status,
            "created_at": self.created_at,
            "estimated_completion_time": self.estimated_completion_time,
        }


class ListOptions(BaseModel):
    """Filtering, sorting and pagination for listing memos."""
    limit: int = 20
    offset: int = 0
    status: Optional[str] = None
    sort: str = "created_at"
    order: str = "desc"

    @validator('limit', 'offset')
    def not_negative(cls, v):
        if v < 0:
            raise ValueError('limit and offset must not be negative')
        return v

    @validator('order')
    def normalize_order(cls, v):
        return "asc" if (v or "").lower() == "asc" else "desc"


class MemoPage(BaseModel):
    """One page of memo records plus the total count after filtering."""
    count: int = 0
    results: List[Dict[str, Any]] = Field(default_factory=list)
