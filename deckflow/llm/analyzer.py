"""Generative analyzer backed by a multimodal Ollama model."""

from typing import Optional

import structlog
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from deckflow.config.prompts import SNAPSHOT_SYSTEM_PROMPT, SNAPSHOT_USER_PROMPT
from deckflow.config.settings import Settings, get_settings
from deckflow.errors import AnalyzerServiceError
from deckflow.llm.client import create_chat_client
from deckflow.llm.parsing import ResponseParseError, parse_json_response

logger = structlog.get_logger(__name__)


class OllamaSnapshotAnalyzer:
    """Sends deck pages to a chat model and returns the parsed JSON response.

    Responses that cannot be parsed are retried up to
    ``analyzer_max_attempts`` times; transport errors are not retried.

    Args:
        llm: Chat model; a ChatOllama client from settings when omitted.
        settings: Optional custom settings.
    """

    def __init__(self, llm: Optional[BaseChatModel] = None, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.llm = llm or create_chat_client(self.settings)

    def build_messages(self, encoded_pages: list[str], file_name: str) -> list:
        content: list[dict] = [
            {"type": "text", "text": SNAPSHOT_USER_PROMPT.format(file_name=file_name)}
        ]
        for url in encoded_pages:
            content.append({"type": "image_url", "image_url": url})
        return [SystemMessage(content=SNAPSHOT_SYSTEM_PROMPT), HumanMessage(content=content)]

    async def analyze(self, encoded_pages: list[str], file_name: str, caller_id: str) -> dict:
        messages = self.build_messages(encoded_pages, file_name)
        logger.info("analyzer_request", file_name=file_name, caller=caller_id, pages=len(encoded_pages))

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max(1, self.settings.analyzer_max_attempts)),
            wait=wait_exponential(
                multiplier=self.settings.analyzer_retry_wait_seconds,
                min=self.settings.analyzer_retry_wait_seconds,
                max=10,
            ),
            retry=retry_if_exception_type(ResponseParseError),
            reraise=True,
        ):
            with attempt:
                response = await self._invoke(messages)
                return parse_json_response(response)

    async def _invoke(self, messages: list) -> str:
        try:
            message = await self.llm.ainvoke(messages)
        except Exception as e:
            logger.error("analyzer_request_failed", error=str(e))
            raise AnalyzerServiceError(
                f"Analyzer request failed: {e}",
                status_code=getattr(e, "status_code", None),
            ) from e

        content = message.content
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part) for part in content
            )
        return content
