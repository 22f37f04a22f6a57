"""Shared test fixtures for voicememo."""

from __future__ import annotations

from typing import Any, List, Optional

import pytest

from voicememo.analyzer import reset_analyzer
from voicememo.config import AppConfig, StoreConfig, WebConfig, reset_config, set_config
from voicememo.llm_client import reset_llm_client
from voicememo.store import InMemoryMemoStore
from voicememo.transcriber import reset_transcriber

CANONICAL_INSIGHTS = """**Transcript Summary:**
- Point one
- Point two

**To-Do List:**
- [ ] Do thing one
- [ ] Do thing two

**Follow-Ups:**
- [ ] Check with Bob

**References & Links:**
- [OpenAI](https://openai.com)
- Plain reference, no link
"""

# What a model typically returns before normalization: plain bullets everywhere
PLAIN_INSIGHTS = """**Transcript Summary:**
- Budget review is due Friday

**To-Do List:**
- Email the finance team
- Book the meeting room

**Follow-Ups:**
- Ask Dana about the forecast

**References & Links:**
- [Quarterly report](https://example.com/q3)
"""


class FakeTranscriber:
    """Stands in for the transcription service."""

    def __init__(self, text: str = "We need to review the budget.", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: List[str] = []

    def transcribe(self, file_path: Any) -> str:
        self.calls.append(str(file_path))
        if self.error:
            raise self.error
        return self.text


class FakeAnalyzer:
    """Stands in for the generation service; returns canned markdown."""

    def __init__(self, markdown: str = PLAIN_INSIGHTS, error: Optional[Exception] = None):
        self.markdown = markdown
        self.error = error
        self.calls: List[tuple] = []

    def analyze(self, transcript: str, model_tag: Optional[str] = None) -> str:
        self.calls.append((transcript, model_tag))
        if self.error:
            raise self.error
        return self.markdown


@pytest.fixture(autouse=True)
def _set_dummy_api_keys(monkeypatch):
    """Ensure tests never hit the real services."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-key-not-real")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key-not-real")


@pytest.fixture(autouse=True)
def _reset_service_singletons():
    """Drop cached clients so one test's config never leaks into the next."""
    yield
    reset_transcriber()
    reset_analyzer()
    reset_llm_client()


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    cfg = AppConfig(
        store=StoreConfig(backend="memory", data_dir=tmp_path / "data"),
        web=WebConfig(upload_folder=tmp_path / "uploads", task_backend="inline"),
    )
    set_config(cfg)
    yield cfg
    reset_config()


@pytest.fixture
def memory_store() -> InMemoryMemoStore:
    return InMemoryMemoStore()


@pytest.fixture
def fake_transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def fake_analyzer() -> FakeAnalyzer:
    return FakeAnalyzer()
