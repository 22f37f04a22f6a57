"""
Audio transcription through the OpenAI transcription endpoint.
"""

import time
from pathlib import Path
from typing import Optional, Union

from openai import OpenAI
from tenacity import (
    retry,
    wait_exponential,
    retry_if_exception_type
)
from loguru import logger

from voicememo.config import LLMConfig, get_config
from voicememo.errors import TranscriptionError
from voicememo.llm_client import stop_after_configured_attempts


class Transcriber:
    """Turn an audio file into text."""

    def __init__(self, config: Optional[LLMConfig] = None):
        self.config = config or get_config().llm
        self.client = OpenAI(api_key=self.config.openai_api_key, timeout=self.config.timeout)

    @retry(
        stop=stop_after_configured_attempts,
        wait=wait_exponential(multiplier=1, min=4, max=60),
        retry=retry_if_exception_type((Exception,)),
        reraise=True,
    )
    def _make_api_call_sync(self, path: Path) -> str:
        with open(path, "rb") as audio:
            response = self.client.audio.transcriptions.create(
                model=self.config.transcription_model,
                file=audio,
            )
        return getattr(response, "text", None) or ""

    def transcribe(self, file_path: Union[str, Path]) -> str:
        """
        Transcribe an audio file.

        Raises:
            TranscriptionError: the file is missing or the service call failed
        """
        path = Path(file_path)
        if not path.is_file():
            raise TranscriptionError("Audio file not found", details=str(path))

        logger.info(f"Transcribing audio file: {path.name}")
        start_time = time.time()
        try:
            text = self._make_api_call_sync(path)
        except Exception as e:
            logger.error(f"Error transcribing audio: {e}")
            raise TranscriptionError("Transcription request failed", details=str(e)) from e

        logger.debug(f"Transcription completed in {time.time() - start_time:.2f}s ({len(text)} chars)")
        return text


# Global transcriber instance
_transcriber: Optional[Transcriber] = None


def get_transcriber() -> Transcriber:
    """Get the global transcriber instance."""
    global _transcriber
    if _transcriber is None:
        _transcriber = Transcriber(get_config().llm)
    return _transcriber


def reset_transcriber() -> None:
    """Reset the global transcriber instance."""
    global _transcriber
    _transcriber = None
