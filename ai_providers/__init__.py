"""
Translation backends.
Layout Translator - Translation Backends

- OpenAIProvider: OpenAI chat completions (default gpt-4o-mini)
- ClaudeProvider: Anthropic messages API (default claude-sonnet-4)

Usage:
    from ai_providers import create_provider

    provider = create_provider(settings)
    response = await provider.complete(
        messages=[AIMessage(role="user", content=batch_json)],
        system_prompt=prompt,
    )
"""

from .base import (
    BaseAIProvider,
    AIProviderType,
    AIMessage,
    AIResponse,
    AIConfig,
    UsageTotals,
)

from .claude_provider import ClaudeProvider
from .openai_provider import OpenAIProvider

from .manager import (
    PROVIDER_REGISTRY,
    create_provider,
)

__all__ = [
    # Base classes
    "BaseAIProvider",
    "AIProviderType",
    "AIMessage",
    "AIResponse",
    "AIConfig",
    "UsageTotals",

    # Providers
    "ClaudeProvider",
    "OpenAIProvider",

    # Factory
    "PROVIDER_REGISTRY",
    "create_provider",
]
