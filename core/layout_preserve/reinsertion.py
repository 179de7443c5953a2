"""
Reinsertion Engine
Layout Translator

Writes translated text back into the structural nodes it came from while
keeping the inline markup (fonts, spans, emphasis) of each node.

Strategies, tried in order for every node:
1. unchanged     - translation equals the original text, nothing to do
2. single_run    - one text run, replaced wholesale
3. word_aligned  - same token count, tokens substituted run by run
4. proportional  - characters shared out by each run's original length
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence
import re

from config.constants import PLACEHOLDER_TOKENS
from config.logging_config import get_logger
from core.errors import ReinsertionError

from .extractor import StructuralNode

logger = get_logger(__name__)

_WHITESPACE_SPLIT = re.compile(r"(\s+)")
_REPEATED_BLANKS = re.compile(r"[ \t]{2,}")


class Strategy(str, Enum):
    """How a node's markup was reconstructed."""
    UNCHANGED = "unchanged"
    SINGLE_RUN = "single_run"
    WORD_ALIGNED = "word_aligned"
    PROPORTIONAL = "proportional"


@dataclass
class ReinsertionStats:
    """Outcome of one reinsertion pass."""
    applied: int = 0
    unchanged: int = 0
    skipped: int = 0
    failed: int = 0
    strategies: Dict[str, Strategy] = field(default_factory=dict)


class ReinsertionEngine:
    """
    Maps translated text back onto structural nodes.

    Reconstruction is all-or-nothing per node: when anything goes wrong
    the node keeps its original inner markup and the failure is logged.

    Usage:
        engine = ReinsertionEngine()
        stats = engine.reinsert(translations, extraction.nodes)
        html = document.render()
    """

    def __init__(self, placeholder_tokens: Sequence[str] = PLACEHOLDER_TOKENS):
        self._placeholders = [
            re.compile(rf"[ \t]*\b{re.escape(token)}\b[ \t]*") for token in placeholder_tokens
        ]

    def reinsert(
        self,
        translations: Dict[str, str],
        nodes: Dict[str, StructuralNode],
    ) -> ReinsertionStats:
        """
        Apply every available translation to its node.

        Args:
            translations: chunk id -> translated text (successful chunks only)
            nodes: chunk id -> structural node side-table

        Returns:
            ReinsertionStats
        """
        stats = ReinsertionStats()

        for chunk_id, structural in nodes.items():
            translated = translations.get(chunk_id)
            if translated is None:
                stats.skipped += 1
                continue

            try:
                strategy = self.reinsert_node(structural, translated)
            except Exception as e:
                stats.failed += 1
                self._restore(structural)
                if not isinstance(e, ReinsertionError):
                    e = ReinsertionError(f"{type(e).__name__}: {e}", chunk_id=chunk_id)
                logger.warning(f"Chunk {chunk_id}: original content kept ({e})")
                continue

            stats.strategies[chunk_id] = strategy
            if strategy == Strategy.UNCHANGED:
                stats.unchanged += 1
            else:
                stats.applied += 1

        logger.info(
            f"Reinsertion: {stats.applied} applied, {stats.unchanged} unchanged, "
            f"{stats.skipped} untranslated, {stats.failed} failed"
        )
        return stats

    def reinsert_node(self, structural: StructuralNode, translated: str) -> Strategy:
        """
        Rebuild one node's inner markup from its translation.

        Raises:
            ReinsertionError: If the node cannot take the translation
        """
        original_text = structural.original_text
        if translated == original_text:
            return Strategy.UNCHANGED

        translated = self.sanitize(translated, original_text)
        if translated == original_text:
            return Strategy.UNCHANGED

        if not translated.strip():
            raise ReinsertionError("empty translation", chunk_id=structural.id)

        runs = [run for run in structural.node.text_runs() if run.text_content().strip()]
        if not runs:
            raise ReinsertionError("node has no text runs", chunk_id=structural.id)

        run_texts = [run.text_content() for run in runs]

        if len(runs) == 1:
            strategy = Strategy.SINGLE_RUN
            new_texts = [translated]
        else:
            new_texts = align_words(run_texts, original_text, translated)
            if new_texts is not None:
                strategy = Strategy.WORD_ALIGNED
            else:
                strategy = Strategy.PROPORTIONAL
                new_texts = redistribute(run_texts, translated)

        # Everything is computed; only now touch the tree
        for run, text in zip(runs, new_texts):
            run.set_text(text)

        return strategy

    def sanitize(self, text: str, original_text: str) -> str:
        """
        Drop placeholder tokens that do not occur in the original text.

        A removed token takes its surrounding blanks with it; the text keeps
        the edge whitespace it came with.
        """
        cleaned = text
        for pattern in self._placeholders:
            if pattern.search(original_text):
                continue
            cleaned = pattern.sub(" ", cleaned)

        if cleaned == text:
            return text

        cleaned = _REPEATED_BLANKS.sub(" ", cleaned)
        if not text[:1].isspace():
            cleaned = cleaned.lstrip(" \t")
        if not text[-1:].isspace():
            cleaned = cleaned.rstrip(" \t")
        return cleaned

    def _restore(self, structural: StructuralNode) -> None:
        try:
            if structural.node.inner_markup() != structural.original_inner_markup:
                structural.node.set_inner_markup(structural.original_inner_markup)
        except Exception as e:
            logger.error(f"Chunk {structural.id}: could not restore original markup: {e}")


def align_words(
    run_texts: List[str],
    original_text: str,
    translated: str,
) -> Optional[List[str]]:
    """
    Substitute translated tokens position by position.

    Each run keeps its own whitespace between tokens. Returns None when the
    token counts of original and translation differ, or when a word is split
    across runs so positions cannot line up.
    """
    translated_tokens = translated.split()
    if len(original_text.split()) != len(translated_tokens):
        return None

    pieces = [_WHITESPACE_SPLIT.split(text) for text in run_texts]
    word_count = sum(1 for parts in pieces for part in parts if part and not part.isspace())
    if word_count != len(translated_tokens):
        return None

    tokens = iter(translated_tokens)
    return [
        "".join(
            next(tokens) if part and not part.isspace() else part
            for part in parts
        )
        for parts in pieces
    ]


def redistribute(run_texts: List[str], translated: str) -> List[str]:
    """
    Share the translated characters out across runs.

    Run i receives ceil(T * len_i / total) characters, capped to what is
    left; the last run takes the remainder. Leading and trailing whitespace
    observed on the original run is kept on its slice.
    """
    total = sum(len(text) for text in run_texts)
    remaining_len = len(translated)
    position = 0
    slices = []

    for index, text in enumerate(run_texts):
        if index == len(run_texts) - 1:
            piece = translated[position:]
        else:
            size = (remaining_len * len(text) + total - 1) // total
            size = min(size, len(translated) - position)
            piece = translated[position:position + size]
            position += size

        if text[:1].isspace() and not piece[:1].isspace():
            piece = " " + piece
        if text[-1:].isspace() and not piece[-1:].isspace():
            piece = piece + " "
        slices.append(piece)

    return slices
