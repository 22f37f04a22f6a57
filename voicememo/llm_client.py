"""
Text-generation clients: OpenAI chat completions and Anthropic Messages.
"""

import time
from typing import Dict, Any, Optional, List

import requests
from openai import OpenAI
from tenacity import (
    RetryCallState,
    retry,
    wait_exponential,
    retry_if_exception_type
)
from loguru import logger

from voicememo.models import TokenUsage
from voicememo.config import LLMConfig, get_config

OPENAI_TAG = "openai"
CLAUDE_TAG = "claude"


def stop_after_configured_attempts(retry_state: RetryCallState) -> bool:
    """tenacity stop condition bounded by the calling client's ``config.max_retries``."""
    client = retry_state.args[0]
    return retry_state.attempt_number >= max(1, client.config.max_retries)


class LLMClient:
    """Client for OpenAI chat completions."""

    model_tag = OPENAI_TAG

    def __init__(self, config: Optional[LLMConfig] = None):
        """Initialize the LLM client."""
        self.config = config or get_config().llm
        self.client = OpenAI(api_key=self.config.openai_api_key, timeout=self.config.timeout)
        logger.info(f"Initialized LLM client with model: {self.config.openai_model}")

    @retry(
        stop=stop_after_configured_attempts,
        wait=wait_exponential(multiplier=1, min=4, max=60),
        retry=retry_if_exception_type((Exception,)),
        reraise=True,
    )
    def _make_api_call_sync(
        self,
        messages: List[Dict[str, str]],
        **kwargs
    ):
        """Make a synchronous API call with retry logic."""
        try:
            call_params = {
                'model': kwargs.get('model', self.config.openai_model),
                'messages': messages,
                'temperature': kwargs.get('temperature', self.config.temperature),
                'max_tokens': kwargs.get('max_tokens', self.config.max_tokens),
            }
            return self.client.chat.completions.create(**call_params)
        except Exception as e:
            logger.error(f"API call failed: {str(e)}")
            raise

    def complete_sync(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> tuple[str, TokenUsage]:
        """
        Generate a completion synchronously.

        Returns:
            Tuple of (response_text, token_usage)
        """
        start_time = time.time()

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        response = self._make_api_call_sync(messages, **kwargs)
        response_text = response.choices[0].message.content or ""

        usage = getattr(response, 'usage', None)
        token_usage = TokenUsage(
            prompt_tokens=getattr(usage, 'prompt_tokens', 0) or 0,
            completion_tokens=getattr(usage, 'completion_tokens', 0) or 0,
            total_tokens=getattr(usage, 'total_tokens', 0) or 0,
            max_tokens=kwargs.get('max_tokens', self.config.max_tokens),
        )

        elapsed_time = time.time() - start_time
        logger.debug(f"OpenAI call completed in {elapsed_time:.2f}s, used {token_usage.total_tokens} tokens")

        return response_text, token_usage


class ClaudeClient:
    """Client for the Anthropic Messages API over plain HTTP."""

    model_tag = CLAUDE_TAG

    def __init__(self, config: Optional[LLMConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or get_config().llm
        self.session = session or requests.Session()
        if not self.config.anthropic_api_key:
            logger.warning("Anthropic API key is not configured; Claude requests will be rejected")
        logger.info(f"Initialized Claude client with model: {self.config.anthropic_model}")

    def _headers(self) -> Dict[str, str]:
        return {
            'x-api-key': self.config.anthropic_api_key or "",
            'anthropic-version': self.config.anthropic_version,
            'content-type': 'application/json',
        }

    @retry(
        stop=stop_after_configured_attempts,
        wait=wait_exponential(multiplier=1, min=4, max=60),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        reraise=True,
    )
    def _make_api_call_sync(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.config.anthropic_api_base.rstrip('/')}/messages"
        response = self.session.post(url, json=payload, headers=self._headers(), timeout=self.config.timeout)
        if response.status_code == 401:
            logger.error("Authentication error with Claude API; check ANTHROPIC_API_KEY")
        response.raise_for_status()
        return response.json()

    def complete_sync(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> tuple[str, TokenUsage]:
        """
        Generate a completion from a single user message.

        ``system_prompt`` is sent through the Messages API ``system`` field when given.
        """
        start_time = time.time()
        payload: Dict[str, Any] = {
            'model': kwargs.get('model', self.config.anthropic_model),
            'max_tokens': kwargs.get('max_tokens', self.config.max_tokens),
            'messages': [{'role': 'user', 'content': prompt}],
        }
        if system_prompt:
            payload['system'] = system_prompt

        data = self._make_api_call_sync(payload)
        blocks = data.get('content') or []
        response_text = "".join(b.get('text', '') for b in blocks if b.get('type', 'text') == 'text')

        usage = data.get('usage') or {}
        prompt_tokens = int(usage.get('input_tokens', 0) or 0)
        completion_tokens = int(usage.get('output_tokens', 0) or 0)
        token_usage = TokenUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            max_tokens=payload['max_tokens'],
        )

        elapsed_time = time.time() - start_time
        logger.debug(f"Claude call completed in {elapsed_time:.2f}s, used {token_usage.total_tokens} tokens")

        return response_text, token_usage


# Client instances keyed by model tag
_llm_clients: Dict[str, Any] = {}


def normalize_model_tag(model_tag: Optional[str]) -> str:
    """Map a requested model tag onto a supported one; unknown tags use OpenAI."""
    tag = (model_tag or "").strip().lower()
    return CLAUDE_TAG if tag == CLAUDE_TAG else OPENAI_TAG


def get_llm_client(model_tag: Optional[str] = None):
    """Get the shared client for a model tag."""
    tag = normalize_model_tag(model_tag)
    if tag not in _llm_clients:
        config = get_config()
        if tag == CLAUDE_TAG:
            _llm_clients[tag] = ClaudeClient(config.llm)
        else:
            _llm_clients[tag] = LLMClient(config.llm)
    return _llm_clients[tag]


def reset_llm_client():
    """Reset the shared client instances."""
    _llm_clients.clear()
