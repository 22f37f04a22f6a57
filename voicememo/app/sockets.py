"""
Socket.IO setup and helper utilities for memo progress events.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from flask import request, has_request_context
from flask_socketio import SocketIO, emit
from loguru import logger

# Initialized by the app factory
socketio: SocketIO = SocketIO()


def _base_payload(extra: Dict[str, Any] | None = None) -> Dict[str, Any]:
    # Works for both HTTP and Socket.IO contexts
    sid = getattr(request, "sid", None) if has_request_context() else None
    payload = {
        "ts": datetime.utcnow().isoformat() + "Z",
        "sid": sid,
    }
    if extra:
        payload.update(extra)
    return payload


# Namespace for progress events
PROGRESS_NS = "/progress"


@socketio.on("connect", namespace=PROGRESS_NS)
def on_connect():
    emit("connected", _base_payload({"status": "ok"}))


def emit_progress(event: str, payload: Dict[str, Any]) -> None:
    """
    Emit a progress event on the progress namespace.
    Best effort: no server (e.g. a bare worker) means the event is dropped.
    """
    if getattr(socketio, "server", None) is None:
        logger.debug(f"Socket.IO not initialized; dropping {event}")
        return
    try:
        socketio.emit(event, _base_payload(payload), namespace=PROGRESS_NS)
    except Exception as e:
        logger.debug(f"Failed to emit {event}: {e}")


def memo_queued(memo_id: str) -> None:
    emit_progress("memo.queued", {"memoId": memo_id})


def memo_transcribed(memo_id: str, transcript_chars: int) -> None:
    emit_progress("memo.transcribed", {"memoId": memo_id, "transcriptChars": transcript_chars})


def memo_completed(memo_id: str, processing_time_ms: int) -> None:
    emit_progress(
        "memo.completed",
        {"memoId": memo_id, "processingTimeMs": processing_time_ms},
    )


def memo_failed(memo_id: str, error_code: str, message: str) -> None:
    emit_progress(
        "memo.failed",
        {
            "memoId": memo_id,
            "errorCode": error_code,
            "message": message,
        },
    )
