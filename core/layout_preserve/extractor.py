"""
Structural Extractor
Layout Translator

Walks a markup tree and emits one TextChunk per leaf-level text-bearing
container, in document order, together with a side-table that maps every
chunk id back to its node.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from config.constants import (
    CONTAINER_TAGS,
    SKIPPED_TAGS,
    PAGE_CONTEXT_ATTRIBUTES,
)
from config.logging_config import get_logger

from .markup_node import MarkupNode

logger = get_logger(__name__)


@dataclass
class TextChunk:
    """Smallest translatable unit, tied to exactly one structural node."""
    id: str
    text: str
    page_context: Optional[str] = None

    @property
    def char_count(self) -> int:
        return len(self.text)


@dataclass
class StructuralNode:
    """Originating node of a chunk plus the content captured at extraction."""
    id: str
    node: MarkupNode
    original_inner_markup: str
    original_text: str


@dataclass
class Extraction:
    """Ordered chunks and the id -> node side-table."""
    chunks: List[TextChunk] = field(default_factory=list)
    nodes: Dict[str, StructuralNode] = field(default_factory=dict)

    @property
    def total_chars(self) -> int:
        return sum(chunk.char_count for chunk in self.chunks)

    def __len__(self) -> int:
        return len(self.chunks)


class StructuralExtractor:
    """
    Emits chunks for leaf-level containers.

    A container is an element whose tag is in ``container_tags``; it is
    leaf-level when none of its descendants is a container. Whitespace-only
    containers are skipped. Ids are positional, so the same tree always
    yields the same ids.

    Usage:
        document = parse_markup(html)
        extraction = StructuralExtractor().extract(document.root)
        for chunk in extraction.chunks:
            print(chunk.id, chunk.text)
    """

    def __init__(
        self,
        container_tags: Iterable[str] = CONTAINER_TAGS,
        page_context_attributes: Tuple[str, ...] = PAGE_CONTEXT_ATTRIBUTES,
        id_prefix: str = "c",
    ):
        self.container_tags = frozenset(tag.lower() for tag in container_tags)
        self.page_context_attributes = tuple(page_context_attributes)
        self.id_prefix = id_prefix

    def extract(self, root: MarkupNode) -> Extraction:
        """
        Extract ordered chunks from a document tree.

        Args:
            root: Root node of the parsed document

        Returns:
            Extraction with chunks in document order
        """
        extraction = Extraction()
        self._walk(root, None, extraction)

        logger.debug(
            f"Extracted {len(extraction.chunks)} chunks "
            f"({extraction.total_chars} chars)"
        )
        return extraction

    def _walk(
        self,
        node: MarkupNode,
        page_context: Optional[str],
        extraction: Extraction,
    ) -> None:
        if node.is_text or node.tag_name in SKIPPED_TAGS:
            return

        page_context = self._page_context(node) or page_context

        if node.tag_name in self.container_tags and not self._has_container(node):
            self._emit(node, page_context, extraction)
            return

        for child in node.children():
            self._walk(child, page_context, extraction)

    def _emit(
        self,
        node: MarkupNode,
        page_context: Optional[str],
        extraction: Extraction,
    ) -> None:
        text = node.text_content().strip()
        if not text:
            return

        chunk_id = f"{self.id_prefix}{len(extraction.chunks)}"
        extraction.chunks.append(TextChunk(
            id=chunk_id,
            text=text,
            page_context=page_context,
        ))
        extraction.nodes[chunk_id] = StructuralNode(
            id=chunk_id,
            node=node,
            original_inner_markup=node.inner_markup(),
            original_text=text,
        )

    def _has_container(self, node: MarkupNode) -> bool:
        for child in node.children():
            if child.is_text or child.tag_name in SKIPPED_TAGS:
                continue
            if child.tag_name in self.container_tags or self._has_container(child):
                return True
        return False

    def _page_context(self, node: MarkupNode) -> Optional[str]:
        for name in self.page_context_attributes:
            value = node.attribute(name)
            if value is not None:
                return value
        return None
