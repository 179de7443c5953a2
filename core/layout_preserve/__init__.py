"""
Layout-Preserving Translation
Layout Translator

Markup-level building blocks: the node interface, extraction of
translatable chunks, reinsertion of translations, and the adapters for
the conversion tool and the rendering backend.
"""

from .markup_node import MarkupNode, SoupNode, MarkupDocument, parse_markup
from .extractor import StructuralExtractor, TextChunk, StructuralNode, Extraction
from .reinsertion import ReinsertionEngine, ReinsertionStats, Strategy
from .converter import DocumentConverter
from .document_renderer import DocumentRenderer

__all__ = [
    # Markup
    "MarkupNode",
    "SoupNode",
    "MarkupDocument",
    "parse_markup",
    # Extraction
    "StructuralExtractor",
    "TextChunk",
    "StructuralNode",
    "Extraction",
    # Reinsertion
    "ReinsertionEngine",
    "ReinsertionStats",
    "Strategy",
    # External tools
    "DocumentConverter",
    "DocumentRenderer",
]
