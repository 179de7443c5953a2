"""
Character-bounded batching of extracted chunks.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from config.constants import DEFAULT_MAX_BATCH_CHARS
from config.logging_config import get_logger

from core.layout_preserve.extractor import TextChunk

logger = get_logger(__name__)


@dataclass
class Batch:
    """Ordered chunks submitted together in one translation request."""
    index: int
    chunks: List[TextChunk] = field(default_factory=list)

    @property
    def char_count(self) -> int:
        return sum(chunk.char_count for chunk in self.chunks)

    @property
    def ids(self) -> List[str]:
        return [chunk.id for chunk in self.chunks]

    def __len__(self) -> int:
        return len(self.chunks)


def create_batches(
    chunks: Sequence[TextChunk],
    max_chars: int = DEFAULT_MAX_BATCH_CHARS,
) -> List[Batch]:
    """
    Group chunks greedily into batches of at most ``max_chars`` characters.

    A chunk that would overflow a non-empty batch opens the next one; a
    chunk longer than the budget ends up alone in its own batch. Batch
    order and order inside each batch follow the input.

    Args:
        chunks: Chunks in document order
        max_chars: Character budget per batch

    Returns:
        List of batches

    Raises:
        ValueError: If max_chars is not positive
    """
    if max_chars <= 0:
        raise ValueError(f"max_chars must be positive, got {max_chars}")

    batches: List[Batch] = []
    current = Batch(index=0)
    current_chars = 0

    for chunk in chunks:
        size = chunk.char_count
        if current.chunks and current_chars + size > max_chars:
            batches.append(current)
            current = Batch(index=len(batches))
            current_chars = 0

        current.chunks.append(chunk)
        current_chars += size

        if size > max_chars:
            logger.debug(f"Chunk {chunk.id} ({size} chars) exceeds budget {max_chars}")

    if current.chunks:
        batches.append(current)

    logger.debug(f"Packed {len(chunks)} chunks into {len(batches)} batches (budget {max_chars})")
    return batches
