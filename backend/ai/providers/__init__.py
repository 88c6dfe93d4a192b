from ai.providers.base import AIProvider, AIProviderError
from ai.providers.openai_provider import OpenAIProvider
from config import settings


def get_provider() -> AIProvider | None:
    """Return the configured completion provider, or None when no API key is set."""
    api_key = (settings.AI_API_KEY or "").strip()
    if not api_key:
        return None
    return OpenAIProvider(
        api_key=api_key,
        model=(settings.AI_MODEL or "").strip() or None,
        timeout_seconds=max(int(settings.AI_TIMEOUT_SECONDS), 1),
        base_url=settings.AI_BASE_URL,
    )


__all__ = ["AIProvider", "AIProviderError", "OpenAIProvider", "get_provider"]
