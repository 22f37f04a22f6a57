"""
Memo processing orchestration.

- MemoProcessor.process: transcribe -> analyze -> post-process -> parse -> persist
- The memo is saved after each stage; any failure ends in status "failed"
- process_memo (Celery task) runs the same flow in a worker process
- build_dispatcher picks how the web app hands a memo off for processing
"""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from loguru import logger

from voicememo.app.celery_app import celery
from voicememo.app.sockets import memo_completed, memo_failed, memo_transcribed
from voicememo.config import AppConfig, get_config
from voicememo.errors import VoiceMemoError
from voicememo.models import Memo, MemoErrorInfo, MemoStatus, utc_now_iso
from voicememo.store import MemoStore, create_store
from voicememo.utils.insight_parser import parse_insights
from voicememo.utils.markdown_normalizer import post_process_insights

PROCESSING_FAILED_MESSAGE = "Failed to process the audio file"


class MemoProcessor:
    """Drive one memo from uploaded audio to structured insights."""

    def __init__(
        self,
        store: MemoStore,
        transcriber: Any = None,
        analyzer: Any = None,
        cleanup_uploads: bool = True,
    ):
        self.store = store
        self._transcriber = transcriber
        self._analyzer = analyzer
        self.cleanup_uploads = cleanup_uploads

    # Outbound clients are resolved lazily so the app can boot without API keys
    @property
    def transcriber(self):
        if self._transcriber is None:
            from voicememo.transcriber import get_transcriber
            self._transcriber = get_transcriber()
        return self._transcriber

    @property
    def analyzer(self):
        if self._analyzer is None:
            from voicememo.analyzer import get_analyzer
            self._analyzer = get_analyzer()
        return self._analyzer

    def _save(self, memo: Memo) -> None:
        self.store.set(memo.id, memo.dict())

    def analyze_transcript(self, transcript: str, model_tag: str) -> str:
        """Generate insights markdown and normalize its checkbox sections."""
        insights = self.analyzer.analyze(transcript, model_tag)
        return post_process_insights(insights, model_tag)

    def process(self, memo_id: str) -> Optional[Dict[str, Any]]:
        """
        Process a stored memo. Returns the final record, or None when the memo
        no longer exists.
        """
        record = self.store.get(memo_id)
        if not record:
            logger.warning(f"Memo {memo_id} not found; nothing to process")
            return None

        memo = Memo(**record)
        if memo.is_terminal:
            logger.info(f"Memo {memo_id} already {memo.status}; skipping")
            return record

        start = time.time()
        try:
            memo.transcript = self.transcriber.transcribe(memo.file_path or "")
            logger.info(f"Transcription completed for memo {memo_id} ({len(memo.transcript)} chars)")
            self._save(memo)
            memo_transcribed(memo_id, len(memo.transcript))

            insights = self.analyze_transcript(memo.transcript, memo.model)
            memo.raw_insights = insights
            memo.raw_format = "markdown"
            memo.insights = parse_insights(insights)
            memo.status = MemoStatus.COMPLETED.value
            memo.completed_at = utc_now_iso()
            memo.error = None
            self._save(memo)

            elapsed_ms = int((time.time() - start) * 1000)
            logger.info(f"Memo {memo_id} processing completed in {elapsed_ms}ms")
            memo_completed(memo_id, elapsed_ms)
        except Exception as e:
            code = e.code if isinstance(e, VoiceMemoError) else "processing_error"
            logger.error(f"Error processing memo {memo_id}: {e}")
            memo.status = MemoStatus.FAILED.value
            memo.completed_at = utc_now_iso()
            memo.error = MemoErrorInfo(code=code, message=PROCESSING_FAILED_MESSAGE, details=str(e))
            self._save(memo)
            memo_failed(memo_id, code, str(e))
        finally:
            self._cleanup(memo)

        return self.store.get(memo_id)

    def _cleanup(self, memo: Memo) -> None:
        if not self.cleanup_uploads or not memo.file_path:
            return
        try:
            Path(memo.file_path).unlink(missing_ok=True)
            logger.debug(f"Cleaned up upload for memo {memo.id}")
        except OSError as e:
            logger.warning(f"Could not delete upload for memo {memo.id}: {e}")


def build_processor(cfg: Optional[AppConfig] = None, store: Optional[MemoStore] = None) -> MemoProcessor:
    cfg = cfg or get_config()
    return MemoProcessor(
        store or create_store(cfg.store),
        cleanup_uploads=cfg.processing.cleanup_uploads,
    )


@celery.task(name="process_memo")
def process_memo(memo_id: str) -> Optional[str]:
    """Worker entry point; returns the terminal status."""
    record = build_processor().process(memo_id)
    return record.get("status") if record else None


def build_dispatcher(task_backend: str, processor: MemoProcessor) -> Callable[[str], None]:
    """Return a callable that starts processing for a memo id."""
    if task_backend == "inline":
        return lambda memo_id: processor.process(memo_id)

    if task_backend == "celery":
        return lambda memo_id: process_memo.delay(memo_id)

    def _in_thread(memo_id: str) -> None:
        worker = threading.Thread(
            target=processor.process,
            args=(memo_id,),
            name=f"memo-{memo_id}",
            daemon=True,
        )
        worker.start()

    return _in_thread
