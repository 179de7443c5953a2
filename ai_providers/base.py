"""
Translation backend interface.
Layout Translator - Translation Backends

A provider wraps one vendor SDK. ``complete()`` is shared: it opens the
client on first use, sends one request and records usage. Subclasses only
build their client and translate a request into the vendor's call.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field
from enum import Enum
import time

from config.constants import TRANSLATION_MAX_TOKENS, TRANSLATION_TEMPERATURE, DEFAULT_REQUEST_TIMEOUT
from config.logging_config import get_logger

logger = get_logger(__name__)


class AIProviderType(Enum):
    """Supported translation backends (value = settings name)."""
    CLAUDE = "anthropic"
    OPENAI = "openai"


@dataclass
class AIMessage:
    """One chat message."""
    role: str  # "user", "assistant"
    content: str


@dataclass
class AIResponse:
    """Backend answer, vendor-neutral."""
    content: str
    model: str
    provider: AIProviderType
    usage: Optional[Dict[str, int]] = None  # input_tokens / output_tokens
    finish_reason: Optional[str] = None
    raw_response: Optional[Any] = None


@dataclass
class AIConfig:
    """Client settings for one provider."""
    api_key: str
    model: str
    max_tokens: int = TRANSLATION_MAX_TOKENS
    temperature: float = TRANSLATION_TEMPERATURE
    base_url: Optional[str] = None
    timeout: float = DEFAULT_REQUEST_TIMEOUT


@dataclass
class UsageTotals:
    """Tokens and requests sent through one provider instance."""
    requests: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    models: Dict[str, int] = field(default_factory=dict)

    def add(self, response: AIResponse):
        self.requests += 1
        self.models[response.model] = self.models.get(response.model, 0) + 1
        if response.usage:
            self.input_tokens += response.usage.get("input_tokens", 0)
            self.output_tokens += response.usage.get("output_tokens", 0)


class BaseAIProvider(ABC):
    """
    Base class for translation backends.

    Subclasses implement:
    - provider_type
    - _create_client(): the vendor SDK client
    - _send(): one request through that client
    """

    DEFAULT_MODEL: str = ""

    def __init__(self, config: AIConfig):
        self.config = config
        self.usage = UsageTotals()
        self._client = None

    @property
    @abstractmethod
    def provider_type(self) -> AIProviderType:
        pass

    @abstractmethod
    def _create_client(self) -> Any:
        pass

    @abstractmethod
    async def _send(
        self,
        messages: List[AIMessage],
        system_prompt: Optional[str],
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> AIResponse:
        pass

    async def initialize(self) -> None:
        """Open the SDK client. Called lazily by complete()."""
        self._client = self._create_client()

    async def complete(
        self,
        messages: List[AIMessage],
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> AIResponse:
        """
        Send one chat request.

        Args:
            messages: Conversation messages
            system_prompt: Optional system instructions
            **kwargs: model, max_tokens, temperature overrides

        Returns:
            AIResponse
        """
        if self._client is None:
            await self.initialize()

        model = kwargs.get("model", self.config.model)
        start = time.time()

        response = await self._send(
            messages,
            system_prompt,
            model=model,
            max_tokens=kwargs.get("max_tokens", self.config.max_tokens),
            temperature=kwargs.get("temperature", self.config.temperature),
        )

        self.usage.add(response)
        logger.debug(
            f"{self.provider_type.value}/{response.model}: "
            f"{(time.time() - start) * 1000:.0f}ms, usage={response.usage}, "
            f"finish={response.finish_reason}"
        )
        return response

    async def close(self) -> None:
        """Release the SDK client."""
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()
        self._client = None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} model={self.config.model}>"
