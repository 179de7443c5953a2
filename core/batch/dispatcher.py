"""
Batch translation dispatch.
Fans batches out to the translation backend concurrently and fans all
results back in, isolating failures per batch.
"""

from dataclasses import dataclass
from typing import List, Optional, Any, Dict
import asyncio
import json
import re
import time

from ai_providers.base import AIMessage, BaseAIProvider
from config.logging_config import get_logger
from config.constants import (
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_REQUEST_TIMEOUT,
)
from core.errors import DispatchError

from .batcher import Batch

logger = get_logger(__name__)


SYSTEM_PROMPT = """You are a professional translator. Translate into {language}.

You receive a JSON array of objects with the keys "id", "text" and "context".
Rules:
- Translate ONLY the value of "text".
- Copy "id" and "context" unchanged.
- Preserve formatting, punctuation, spacing and line breaks.
- Do not translate proper nouns (names of people, places, brands, products).
- Items may be sentence fragments; infer their meaning from neighbouring items.

Answer with a JSON array of the same length and shape, and nothing else."""

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


@dataclass
class TranslationResult:
    """Translated text for one chunk."""
    id: str
    translated_text: str


@dataclass
class DispatchStats:
    """Statistics from one dispatch call."""
    total_batches: int = 0
    succeeded: int = 0
    failed: int = 0
    submitted_chunks: int = 0
    translated_chunks: int = 0
    duration_ms: float = 0.0


class TranslationDispatcher:
    """
    Sends batches to the translation backend.

    Features:
    - Concurrent requests with an optional concurrency cap
    - Per-batch timeout
    - Failure isolation: a failed batch yields an empty result group

    Usage:
        dispatcher = TranslationDispatcher(provider, max_concurrency=8)
        groups = await dispatcher.dispatch(batches, "French")
        translations = merge_results(groups)
    """

    def __init__(
        self,
        provider: BaseAIProvider,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """
        Initialize dispatcher.

        Args:
            provider: Translation backend client, built once at startup
            max_concurrency: Maximum parallel requests (0 = no cap)
            timeout: Timeout per batch request in seconds
        """
        self.provider = provider
        self.max_concurrency = max_concurrency
        self.timeout = timeout
        self.last_stats = DispatchStats()

        logger.debug(
            f"TranslationDispatcher initialized: "
            f"concurrency={max_concurrency or 'unbounded'}, timeout={timeout}s"
        )

    async def dispatch(
        self,
        batches: List[Batch],
        target_language: str,
    ) -> List[List[TranslationResult]]:
        """
        Translate all batches and wait until every request settled.

        Args:
            batches: Batches to translate
            target_language: Target language label

        Returns:
            One result group per batch, in batch order. A group is empty
            when its batch failed and may be a subset of the batch ids.
        """
        stats = DispatchStats(
            total_batches=len(batches),
            submitted_chunks=sum(len(batch) for batch in batches),
        )
        self.last_stats = stats
        if not batches:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency > 0 else None
        start_time = time.time()

        async def process_single(batch: Batch) -> List[TranslationResult]:
            if semaphore is None:
                return await self._translate_isolated(batch, target_language)
            async with semaphore:
                return await self._translate_isolated(batch, target_language)

        results = await asyncio.gather(
            *(process_single(batch) for batch in batches),
            return_exceptions=True,
        )

        groups: List[List[TranslationResult]] = []
        for batch, result in zip(batches, results):
            if isinstance(result, BaseException):
                # Cancellation and other escapes from the isolation wrapper
                logger.error(f"Batch {batch.index} exception: {result!r}")
                groups.append([])
                stats.failed += 1
            elif not result:
                groups.append(result)
                stats.failed += 1
            else:
                groups.append(result)
                stats.succeeded += 1
                stats.translated_chunks += len(result)

        stats.duration_ms = (time.time() - start_time) * 1000

        logger.info(
            f"Dispatch complete: {stats.succeeded}/{stats.total_batches} batches, "
            f"{stats.translated_chunks}/{stats.submitted_chunks} chunks translated"
        )
        return groups

    async def _translate_isolated(
        self,
        batch: Batch,
        target_language: str,
    ) -> List[TranslationResult]:
        try:
            return await asyncio.wait_for(
                self.translate_batch(batch, target_language),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Batch {batch.index}: timeout after {self.timeout}s")
        except DispatchError as e:
            logger.error(f"Batch {batch.index}: {e}")
        except Exception as e:
            logger.error(f"Batch {batch.index}: request failed: {type(e).__name__}: {e}")
        return []

    async def translate_batch(
        self,
        batch: Batch,
        target_language: str,
    ) -> List[TranslationResult]:
        """
        Translate one batch.

        Raises:
            DispatchError: If the response is empty or malformed
        """
        payload = [
            {"id": chunk.id, "text": chunk.text, "context": chunk.page_context or ""}
            for chunk in batch.chunks
        ]

        response = await self.provider.complete(
            messages=[AIMessage(
                role="user",
                content=json.dumps(payload, ensure_ascii=False),
            )],
            system_prompt=SYSTEM_PROMPT.format(language=target_language),
        )

        return parse_batch_response(response.content, batch)


def parse_batch_response(content: Optional[str], batch: Batch) -> List[TranslationResult]:
    """
    Parse the backend answer for one batch.

    Items with unknown ids or a non-string text are dropped one by one;
    an answer that is not a JSON array at all fails the whole batch.

    Raises:
        DispatchError: If the content is empty or not a JSON array
    """
    if not content or not content.strip():
        raise DispatchError("empty response", batch_index=batch.index)

    text = content.strip()
    fenced = _CODE_FENCE.match(text)
    if fenced:
        text = fenced.group(1)

    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as e:
        raise DispatchError(f"unparsable response: {e}", batch_index=batch.index)

    # Some models wrap the array: {"items": [...]}
    if isinstance(data, dict) and len(data) == 1:
        data = next(iter(data.values()))

    if not isinstance(data, list):
        raise DispatchError(
            f"expected a JSON array, got {type(data).__name__}",
            batch_index=batch.index,
        )

    submitted = set(batch.ids)
    seen: Dict[str, TranslationResult] = {}
    for item in data:
        if not isinstance(item, dict):
            continue
        chunk_id = item.get("id")
        translated = item.get("text")
        if not isinstance(chunk_id, str) or chunk_id not in submitted or not isinstance(translated, str):
            logger.debug(f"Batch {batch.index}: dropping item {item!r:.80}")
            continue
        seen.setdefault(chunk_id, TranslationResult(id=chunk_id, translated_text=translated))

    if len(seen) < len(submitted):
        logger.warning(
            f"Batch {batch.index}: {len(seen)}/{len(submitted)} items translated"
        )
    return list(seen.values())


def merge_results(groups: List[List[TranslationResult]]) -> Dict[str, str]:
    """Flatten result groups into an id -> translated text map."""
    return {
        result.id: result.translated_text
        for group in groups
        for result in group
    }
