"""
Voice Memo Insights - Main package.
"""

from voicememo.models import *
from voicememo.config import get_config, set_config, reset_config
from voicememo.llm_client import get_llm_client, reset_llm_client
from voicememo.utils.markdown_normalizer import post_process_insights
from voicememo.utils.insight_parser import parse_insights

__version__ = "1.0.0"
__all__ = [
    "get_config",
    "set_config",
    "reset_config",
    "get_llm_client",
    "reset_llm_client",
    "post_process_insights",
    "parse_insights",
]
