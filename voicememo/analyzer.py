"""
Insights analyzer: sends a transcript to a generation model with the
analysis prompt and returns the model's markdown reply.
"""

import re
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import jinja2
import yaml
from loguru import logger

from voicememo.errors import AnalysisError
from voicememo.llm_client import CLAUDE_TAG, get_llm_client, normalize_model_tag
from voicememo.utils.markdown_normalizer import count_checkboxes

PROMPTS_PATH = Path(__file__).with_name("prompts.yaml")

# Some models open with "I understand the instructions..." before the first heading
ACKNOWLEDGMENT_PAT = re.compile(r"I understand the instructions[\s\S]*?(?=\*\*Transcript Summary)")


def load_prompts(path: Optional[Path] = None) -> Dict[str, str]:
    """Load the prompt set from YAML."""
    with open(path or PROMPTS_PATH, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not data.get('transcript_analysis'):
        raise ValueError(f"No transcript_analysis prompt in {path or PROMPTS_PATH}")
    return data


def strip_acknowledgment(content: str) -> str:
    """Drop a leading acknowledgment of the instructions, if present."""
    if "I understand the instructions" not in content:
        return content
    return ACKNOWLEDGMENT_PAT.sub("", content, count=1)


class InsightsAnalyzer:
    """Produce insights markdown for a transcript."""

    def __init__(
        self,
        prompts: Optional[Dict[str, str]] = None,
        client_factory: Callable[[str], Any] = get_llm_client,
    ):
        self.prompts = prompts or load_prompts()
        self.client_factory = client_factory
        self.user_template = jinja2.Template(
            self.prompts.get('claude_user_message') or "{{ prompt }}\n\n{{ transcript }}"
        )

    def format_messages(self, transcript: str, model_tag: str) -> Dict[str, Optional[str]]:
        """Build the (prompt, system_prompt) pair for the chosen model."""
        analysis_prompt = self.prompts['transcript_analysis']
        if model_tag == CLAUDE_TAG:
            return {
                'prompt': self.user_template.render(prompt=analysis_prompt, transcript=transcript),
                'system_prompt': None,
            }
        return {'prompt': transcript, 'system_prompt': analysis_prompt}

    def analyze(self, transcript: str, model_tag: Optional[str] = None) -> str:
        """
        Run the analysis prompt over a transcript.

        Raises:
            AnalysisError: the generation service failed
        """
        tag = normalize_model_tag(model_tag)
        logger.info(f"Analyzing transcript with {tag} ({len(transcript or '')} chars)")
        start_time = time.time()
        try:
            client = self.client_factory(tag)
            content, token_usage = client.complete_sync(**self.format_messages(transcript or "", tag))
        except Exception as e:
            logger.error(f"Error analyzing text with {tag}: {e}")
            raise AnalysisError(f"Analysis with {tag} failed", details=str(e)) from e

        logger.debug(f"Content sample (first 200 chars): {content[:200]!r}")
        logger.debug(f"Checkbox patterns in {tag} response: {count_checkboxes(content)}")
        logger.info(
            f"Analysis with {tag} completed in {time.time() - start_time:.2f}s "
            f"({token_usage.total_tokens} tokens)"
        )
        return strip_acknowledgment(content)


# Global analyzer instance
_analyzer: Optional[InsightsAnalyzer] = None


def get_analyzer() -> InsightsAnalyzer:
    """Get the global analyzer instance."""
    global _analyzer
    if _analyzer is None:
        _analyzer = InsightsAnalyzer()
    return _analyzer


def reset_analyzer() -> None:
    """Reset the global analyzer instance."""
    global _analyzer
    _analyzer = None
