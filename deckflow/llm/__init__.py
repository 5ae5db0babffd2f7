"""Generative analyzer client."""

from .analyzer import OllamaSnapshotAnalyzer
from .client import create_chat_client
from .parsing import ResponseParseError, parse_json_response

__all__ = [
    "OllamaSnapshotAnalyzer",
    "create_chat_client",
    "ResponseParseError",
    "parse_json_response",
]
