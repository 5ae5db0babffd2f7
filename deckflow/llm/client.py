"""Ollama chat client configuration."""

from langchain_ollama import ChatOllama

from deckflow.config.settings import Settings, get_settings


def create_chat_client(settings: Settings | None = None) -> ChatOllama:
    """Create a multimodal Ollama chat client configured for JSON output.

    Args:
        settings: Optional custom settings. Uses defaults if not provided.

    Returns:
        Configured ChatOllama instance.
    """
    settings = settings or get_settings()

    return ChatOllama(
        model=settings.analyzer_model_name,
        base_url=settings.analyzer_base_url,
        temperature=settings.analyzer_temperature,
        num_ctx=settings.analyzer_num_ctx,
        format="json",
        client_kwargs={"timeout": settings.analyzer_request_timeout},
    )
