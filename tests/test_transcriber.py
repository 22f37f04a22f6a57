"""Tests for the audio transcriber."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from tenacity import wait_none

from voicememo.config import LLMConfig
from voicememo.errors import TranscriptionError
from voicememo.transcriber import Transcriber, get_transcriber, reset_transcriber


def _fake_openai(create):
    return SimpleNamespace(audio=SimpleNamespace(transcriptions=SimpleNamespace(create=create)))


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "memo.m4a"
    path.write_bytes(b"fake audio")
    return path


def test_transcribe_returns_text(audio_file):
    seen = {}

    def create(model, file):
        seen["model"] = model
        return SimpleNamespace(text="hello from the memo")

    transcriber = Transcriber(LLMConfig(openai_api_key="test"))
    transcriber.client = _fake_openai(create)

    assert transcriber.transcribe(audio_file) == "hello from the memo"
    assert seen["model"] == "whisper-1"


def test_missing_file_raises(tmp_path):
    transcriber = Transcriber(LLMConfig(openai_api_key="test"))
    with pytest.raises(TranscriptionError) as exc:
        transcriber.transcribe(tmp_path / "missing.m4a")
    assert exc.value.code == "transcription_error"


def test_service_error_wrapped(monkeypatch, audio_file):
    monkeypatch.setattr(Transcriber._make_api_call_sync.retry, "wait", wait_none())
    attempts = []

    def create(model, file):
        attempts.append(1)
        raise RuntimeError("service unavailable")

    transcriber = Transcriber(LLMConfig(openai_api_key="test"))
    transcriber.client = _fake_openai(create)

    with pytest.raises(TranscriptionError) as exc:
        transcriber.transcribe(audio_file)
    assert exc.value.details == "service unavailable"
    assert len(attempts) == 3


def test_attempts_follow_max_retries(monkeypatch, audio_file):
    monkeypatch.setattr(Transcriber._make_api_call_sync.retry, "wait", wait_none())
    attempts = []

    def create(model, file):
        attempts.append(1)
        raise RuntimeError("service unavailable")

    transcriber = Transcriber(LLMConfig(openai_api_key="test", max_retries=2))
    transcriber.client = _fake_openai(create)

    with pytest.raises(TranscriptionError):
        transcriber.transcribe(audio_file)
    assert len(attempts) == 2


def test_shared_transcriber_is_reset(app_config):
    first = get_transcriber()
    assert get_transcriber() is first
    reset_transcriber()
    assert get_transcriber() is not first
