"""
API blueprint for the Voice Memo Insights service.

Endpoints:
- POST   /v1/memos                        (upload audio; processing runs in the background)
- GET    /v1/memos                        (list with status filter, sorting and pagination)
- GET    /v1/memos/<memo_id>
- DELETE /v1/memos/<memo_id>
- GET    /v1/memos/<memo_id>/export/markdown
- GET    /v1/memos/<memo_id>/export/obsidian
- POST   /upload                          (legacy synchronous transcribe + analyze)
- GET    /health
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Blueprint, Response, current_app, jsonify, request
from loguru import logger
from pydantic import ValidationError
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.utils import secure_filename

from voicememo.config import AppConfig
from voicememo.errors import (
    InvalidRequestError,
    MemoNotFoundError,
    VoiceMemoError,
)
from voicememo.llm_client import normalize_model_tag
from voicememo.models import ListOptions, Memo, MemoStatus, utc_now_iso
from voicememo.store import MemoStore
from voicememo.utils.exporter import export_filename, memo_to_markdown, obsidian_note_name, obsidian_uri
from voicememo.utils.insight_parser import generate_id
from .sockets import memo_queued

api_bp = Blueprint("api", __name__)


def _config() -> AppConfig:
    return current_app.extensions["voicememo_config"]


def _store() -> MemoStore:
    return current_app.extensions["memo_store"]


def _error(code: str, message: str, status: int, details: Optional[str] = None):
    body: Dict[str, Any] = {"code": code, "message": message}
    if details:
        body["details"] = details
    return jsonify({"error": body}), status


@api_bp.errorhandler(VoiceMemoError)
def _handle_service_error(e: VoiceMemoError):
    return jsonify({"error": e.to_dict()}), e.http_status


@api_bp.errorhandler(RequestEntityTooLarge)
def _handle_too_large(e: RequestEntityTooLarge):
    return _error("file_too_large", "Uploaded file exceeds the size limit", 413)


def _get_memo_or_404(memo_id: str) -> Dict[str, Any]:
    memo = _store().get(memo_id)
    if not memo:
        raise MemoNotFoundError(memo_id)
    return memo


def _save_upload(file: FileStorage) -> Path:
    """Validate the extension and write the upload under the configured folder."""
    cfg = _config()
    original = file.filename or ""
    suffix = Path(original).suffix.lower()
    allowed = [ext.lower() for ext in cfg.web.allowed_extensions]
    if allowed and suffix not in allowed:
        raise InvalidRequestError(
            "Unsupported audio file type",
            details=f"allowed extensions: {', '.join(allowed)}",
        )
    folder = Path(cfg.web.upload_folder)
    folder.mkdir(parents=True, exist_ok=True)
    name = secure_filename(original) or f"upload{suffix}"
    path = folder / f"{int(time.time() * 1000)}-{name}"
    file.save(str(path))
    return path


def _parse_metadata(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise InvalidRequestError("metadata must be a JSON object", details=str(e)) from e
    if not isinstance(data, dict):
        raise InvalidRequestError("metadata must be a JSON object")
    return data


def _list_options() -> ListOptions:
    args = request.args
    try:
        return ListOptions(
            limit=int(args.get("limit", _config().processing.default_page_size)),
            offset=int(args.get("offset", 0)),
            status=args.get("status") or None,
            sort=args.get("sort") or "created_at",
            order=args.get("order") or "desc",
        )
    except (ValueError, ValidationError) as e:
        raise InvalidRequestError("Invalid list parameters", details=str(e)) from e


@api_bp.post("/v1/memos")
def create_memo():
    """
    Accept an audio upload and start processing it.
    Form fields: audio (file, required), title, model (openai|claude), metadata (JSON string)
    Returns 202: { id, status, created_at, estimated_completion_time }
    """
    file = request.files.get("audio")
    logger.info(
        f"Received memo creation request: filename={file.filename if file else 'no file'} "
        f"model={request.form.get('model') or 'default'}"
    )
    if not file or not file.filename:
        return _error("invalid_request", "No file uploaded", 400)

    cfg = _config()
    metadata = _parse_metadata(request.form.get("metadata"))
    path = _save_upload(file)
    model = normalize_model_tag(request.form.get("model") or cfg.processing.default_model)

    memo = Memo(
        id=generate_id("memo"),
        status=MemoStatus.PROCESSING.value,
        created_at=utc_now_iso(),
        estimated_completion_time=utc_now_iso(cfg.processing.estimated_completion_seconds),
        title=request.form.get("title") or file.filename,
        model=model,
        file_path=str(path),
        metadata=metadata,
    )
    _store().set(memo.id, memo.dict())
    accepted = memo.summary_view()

    memo_queued(memo.id)
    current_app.extensions["memo_dispatcher"](memo.id)

    return jsonify(accepted), 202


@api_bp.get("/v1/memos/<memo_id>")
def get_memo(memo_id: str):
    return jsonify(_get_memo_or_404(memo_id))


@api_bp.get("/v1/memos")
def list_memos():
    """
    Query params: limit, offset, status, sort (record key), order (asc|desc)
    Returns: { count, results }
    """
    options = _list_options()
    logger.debug(f"Listing memos: {options.dict()}")
    page = _store().list(options)
    return jsonify(page.dict())


@api_bp.delete("/v1/memos/<memo_id>")
def delete_memo(memo_id: str):
    _get_memo_or_404(memo_id)
    _store().delete(memo_id)
    logger.info(f"Deleted memo {memo_id}")
    return "", 204


@api_bp.get("/v1/memos/<memo_id>/export/markdown")
def export_markdown(memo_id: str):
    """Download a completed memo as a markdown attachment."""
    memo = _get_memo_or_404(memo_id)
    content = memo_to_markdown(memo)
    filename = export_filename(memo, _config().export.filename_prefix)
    return Response(
        content,
        mimetype="text/markdown",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@api_bp.get("/v1/memos/<memo_id>/export/obsidian")
def export_obsidian(memo_id: str):
    """Return an obsidian:// link that creates the memo as a note."""
    memo = _get_memo_or_404(memo_id)
    vault = _config().export.obsidian_vault
    return jsonify({"uri": obsidian_uri(memo, vault), "name": obsidian_note_name(memo), "vault": vault})


@api_bp.post("/upload")
def legacy_upload():
    """
    Synchronous flow kept for older clients: transcribe, analyze and return
    { transcript, insights } without storing a memo.
    """
    file = request.files.get("audio")
    if not file or not file.filename:
        return jsonify({"error": "No file uploaded"}), 400

    cfg = _config()
    processor = current_app.extensions["memo_processor"]
    model = normalize_model_tag(request.form.get("model") or cfg.processing.default_model)
    path = _save_upload(file)
    try:
        transcript = processor.transcriber.transcribe(path)
        insights = processor.analyze_transcript(transcript, model)
    except Exception as e:
        logger.error(f"Error processing legacy upload: {e}")
        details = getattr(e, "details", None) or str(e)
        return jsonify({"error": "Error processing your audio file", "details": details}), 500
    finally:
        if cfg.processing.cleanup_uploads:
            path.unlink(missing_ok=True)

    return jsonify({"transcript": transcript, "insights": insights})


@api_bp.get("/health")
def health():
    return jsonify({"status": "ok", "timestamp": utc_now_iso()})
