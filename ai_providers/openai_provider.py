"""
OpenAI translation backend (chat completions).
Layout Translator - Translation Backends
"""

from typing import Optional, List, Dict, Any

from openai import AsyncOpenAI

from .base import (
    BaseAIProvider,
    AIProviderType,
    AIMessage,
    AIResponse,
)


class OpenAIProvider(BaseAIProvider):
    """
    OpenAI chat completions.

    The system prompt travels as the first message; the JSON batch is the
    user message.
    """

    DEFAULT_MODEL = "gpt-4o-mini"

    @property
    def provider_type(self) -> AIProviderType:
        return AIProviderType.OPENAI

    def _create_client(self) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=self.config.api_key,
            base_url=self.config.base_url,
            timeout=self.config.timeout,
        )

    @staticmethod
    def build_messages(
        messages: List[AIMessage],
        system_prompt: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        converted = [{"role": "system", "content": system_prompt}] if system_prompt else []
        converted.extend({"role": msg.role, "content": msg.content} for msg in messages)
        return converted

    async def _send(
        self,
        messages: List[AIMessage],
        system_prompt: Optional[str],
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> AIResponse:
        response = await self._client.chat.completions.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=self.build_messages(messages, system_prompt),
        )

        choice = response.choices[0]
        usage = None
        if response.usage:
            usage = {
                "input_tokens": response.usage.prompt_tokens,
                "output_tokens": response.usage.completion_tokens,
            }

        return AIResponse(
            content=choice.message.content or "",
            model=response.model,
            provider=self.provider_type,
            usage=usage,
            finish_reason=choice.finish_reason,
            raw_response=response,
        )
