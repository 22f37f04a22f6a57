"""Tests for the memo processing flow and dispatch."""

from __future__ import annotations

import pytest

from voicememo.app import orchestration
from voicememo.app.orchestration import MemoProcessor, build_dispatcher
from voicememo.errors import AnalysisError, TranscriptionError
from voicememo.models import Memo

from conftest import FakeAnalyzer, FakeTranscriber


@pytest.fixture
def upload(tmp_path):
    path = tmp_path / "memo.m4a"
    path.write_bytes(b"fake audio")
    return path


def _seed(store, upload, model="openai"):
    memo = Memo(id="memo_1", file_path=str(upload), model=model)
    store.set(memo.id, memo.dict())
    return memo.id


def test_process_success(memory_store, upload, fake_transcriber, fake_analyzer):
    memo_id = _seed(memory_store, upload, model="claude")
    processor = MemoProcessor(memory_store, transcriber=fake_transcriber, analyzer=fake_analyzer)

    record = processor.process(memo_id)

    assert record["status"] == "completed"
    assert record["completed_at"]
    assert record["transcript"] == fake_transcriber.text
    assert record["raw_format"] == "markdown"
    assert "- [ ] Email the finance team" in record["raw_insights"]
    assert [i["text"] for i in record["insights"]["todo_items"]] == [
        "Email the finance team",
        "Book the meeting room",
    ]
    assert record["insights"]["follow_ups"][0]["text"] == "Ask Dana about the forecast"
    assert record["insights"]["references"][0]["url"] == "https://example.com/q3"
    assert record["error"] is None
    assert fake_analyzer.calls == [(fake_transcriber.text, "claude")]
    assert not upload.exists()


def test_transcription_failure(memory_store, upload, fake_analyzer):
    memo_id = _seed(memory_store, upload)
    transcriber = FakeTranscriber(error=TranscriptionError("Transcription request failed", details="boom"))
    processor = MemoProcessor(memory_store, transcriber=transcriber, analyzer=fake_analyzer)

    record = processor.process(memo_id)

    assert record["status"] == "failed"
    assert record["error"]["code"] == "transcription_error"
    assert record["error"]["message"] == "Failed to process the audio file"
    assert record["transcript"] is None
    assert fake_analyzer.calls == []
    assert not upload.exists()


def test_analysis_failure_keeps_transcript(memory_store, upload, fake_transcriber):
    memo_id = _seed(memory_store, upload)
    analyzer = FakeAnalyzer(error=AnalysisError("Analysis with openai failed"))
    processor = MemoProcessor(memory_store, transcriber=fake_transcriber, analyzer=analyzer)

    record = processor.process(memo_id)

    assert record["status"] == "failed"
    assert record["error"]["code"] == "analysis_error"
    assert record["transcript"] == fake_transcriber.text


def test_unexpected_failure_uses_generic_code(memory_store, upload, fake_transcriber):
    memo_id = _seed(memory_store, upload)
    analyzer = FakeAnalyzer(error=RuntimeError("kaboom"))
    record = MemoProcessor(memory_store, transcriber=fake_transcriber, analyzer=analyzer).process(memo_id)
    assert record["error"]["code"] == "processing_error"
    assert record["error"]["details"] == "kaboom"


def test_unparseable_insights_still_complete(memory_store, upload, fake_transcriber):
    memo_id = _seed(memory_store, upload)
    analyzer = FakeAnalyzer(markdown="The model rambled without any headings.")
    record = MemoProcessor(memory_store, transcriber=fake_transcriber, analyzer=analyzer).process(memo_id)
    assert record["status"] == "completed"
    assert record["insights"] == {"summary": [], "todo_items": [], "follow_ups": [], "references": []}


def test_cleanup_can_be_disabled(memory_store, upload, fake_transcriber, fake_analyzer):
    memo_id = _seed(memory_store, upload)
    MemoProcessor(
        memory_store, transcriber=fake_transcriber, analyzer=fake_analyzer, cleanup_uploads=False
    ).process(memo_id)
    assert upload.exists()


def test_missing_memo_returns_none(memory_store, fake_transcriber, fake_analyzer):
    processor = MemoProcessor(memory_store, transcriber=fake_transcriber, analyzer=fake_analyzer)
    assert processor.process("does-not-exist") is None
    assert fake_transcriber.calls == []


def test_inline_dispatcher_runs_immediately(memory_store, upload, fake_transcriber, fake_analyzer):
    memo_id = _seed(memory_store, upload)
    processor = MemoProcessor(memory_store, transcriber=fake_transcriber, analyzer=fake_analyzer)
    build_dispatcher("inline", processor)(memo_id)
    assert memory_store.get(memo_id)["status"] == "completed"


def test_celery_dispatcher_enqueues(monkeypatch, memory_store):
    queued = []

    class FakeTask:
        def delay(self, memo_id):
            queued.append(memo_id)

    monkeypatch.setattr(orchestration, "process_memo", FakeTask())
    build_dispatcher("celery", MemoProcessor(memory_store))("memo_9")
    assert queued == ["memo_9"]


def test_terminal_memo_is_not_reprocessed(memory_store, upload, fake_transcriber, fake_analyzer):
    memo = Memo(id="memo_done", status="completed", file_path=str(upload), transcript="kept")
    memory_store.set(memo.id, memo.dict())
    processor = MemoProcessor(memory_store, transcriber=fake_transcriber, analyzer=fake_analyzer)

    record = processor.process(memo.id)

    assert record["status"] == "completed"
    assert record["transcript"] == "kept"
    assert fake_transcriber.calls == []
    assert upload.exists()
