"""
LLM client factory for the AI assistant.

Builds a langchain ChatOpenAI model from settings. A new client is created
per request; the SDK pools HTTP connections internally.
"""

from langchain_openai import ChatOpenAI

from shared.config import get_settings


def get_chat_model() -> ChatOpenAI:
    settings = get_settings()
    kwargs = {}
    if settings.LLM_BASE_URL:
        kwargs["base_url"] = settings.LLM_BASE_URL

    return ChatOpenAI(
        model=settings.LLM_MODEL,
        api_key=settings.OPENAI_API_KEY,
        temperature=settings.LLM_TEMPERATURE,
        max_tokens=settings.LLM_MAX_TOKENS,
        request_timeout=settings.LLM_TIMEOUT_SECONDS,
        max_retries=1,  # Breaker counts the final failure
        **kwargs,
    )
