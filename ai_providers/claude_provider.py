"""
Anthropic translation backend (messages API).
Layout Translator - Translation Backends
"""

from typing import Optional, List

import anthropic

from .base import (
    BaseAIProvider,
    AIProviderType,
    AIMessage,
    AIResponse,
)


class ClaudeProvider(BaseAIProvider):
    """
    Anthropic messages API.

    The system prompt is a separate request field; only text blocks of the
    answer are kept.
    """

    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    @property
    def provider_type(self) -> AIProviderType:
        return AIProviderType.CLAUDE

    def _create_client(self) -> anthropic.AsyncAnthropic:
        return anthropic.AsyncAnthropic(
            api_key=self.config.api_key,
            base_url=self.config.base_url,
            timeout=self.config.timeout,
        )

    async def _send(
        self,
        messages: List[AIMessage],
        system_prompt: Optional[str],
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> AIResponse:
        response = await self._client.messages.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt or "",
            messages=[{"role": msg.role, "content": msg.content} for msg in messages],
        )

        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )

        return AIResponse(
            content=text,
            model=response.model,
            provider=self.provider_type,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
            finish_reason=response.stop_reason,
            raw_response=response,
        )
