"""
Exception types for the Voice Memo Insights service.

Each error carries a stable ``code`` that ends up in API error bodies and in
the ``error`` field of failed memos.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class VoiceMemoError(Exception):
    """Base class for service errors."""

    code = "processing_error"
    http_status = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class TranscriptionError(VoiceMemoError):
    """The transcription service failed or returned nothing usable."""

    code = "transcription_error"
    http_status = 502


class AnalysisError(VoiceMemoError):
    """The text-generation service failed."""

    code = "analysis_error"
    http_status = 502


class InvalidRequestError(VoiceMemoError):
    code = "invalid_request"
    http_status = 400


class MemoNotFoundError(VoiceMemoError):
    code = "not_found"
    http_status = 404

    def __init__(self, memo_id: str):
        super().__init__("Memo not found", details=None)
        self.memo_id = memo_id


class InvalidMemoStateError(VoiceMemoError):
    """Operation needs a memo in a different status (e.g. export before completion)."""

    code = "invalid_state"
    http_status = 400
