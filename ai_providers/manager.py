"""
AI Provider Manager
Layout Translator - Translation Backends

Builds the translation backend client once, from settings.
"""

from typing import Dict, Type

from config.logging_config import get_logger

from .base import BaseAIProvider, AIProviderType, AIConfig
from .claude_provider import ClaudeProvider
from .openai_provider import OpenAIProvider

logger = get_logger(__name__)


# Registry of all available providers
PROVIDER_REGISTRY: Dict[AIProviderType, Type[BaseAIProvider]] = {
    AIProviderType.CLAUDE: ClaudeProvider,
    AIProviderType.OPENAI: OpenAIProvider,
}


def create_provider(settings) -> BaseAIProvider:
    """
    Create the configured provider.

    The client itself is opened lazily on the first request, so this is
    safe to call without network access.

    Args:
        settings: Settings instance (provider, model, keys, timeouts)

    Returns:
        Provider instance to pass to the dispatcher

    Raises:
        ValueError: If the provider name is unknown
    """
    try:
        provider_type = AIProviderType(settings.provider)
    except ValueError:
        raise ValueError(f"Unsupported provider: {settings.provider}")

    if provider_type == AIProviderType.OPENAI:
        api_key = settings.openai_api_key
    else:
        api_key = settings.anthropic_api_key

    provider_class = PROVIDER_REGISTRY[provider_type]
    config = AIConfig(
        api_key=api_key,
        model=settings.model or provider_class.DEFAULT_MODEL,
        temperature=settings.temperature,
        timeout=settings.request_timeout_seconds,
    )

    provider = provider_class(config)
    logger.info(f"Translation backend: {provider!r}")
    return provider
