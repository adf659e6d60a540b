"""
ScriptScope Chunk Manager

Splits long documents into ordered, bounded chunks for providers whose
effective context is smaller than the document. Structural boundaries
(scene headings, blank-line paragraphs, sentences) are preferred over hard
cuts, and joining the chunk texts in index order reproduces the document up
to whitespace.
"""

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from scriptscope.core.config import ChunkingConfig
from scriptscope.core.constants import (
    CHARS_PER_TOKEN,
    CHUNK_SEPARATOR,
    SCENE_HEADING_PATTERN,
)
from scriptscope.core.exceptions import ChunkingError, InvalidConfigError
from scriptscope.core.logging_config import get_logger

logger = get_logger("utils.chunk_manager")

PARAGRAPH_BREAK = re.compile(r'\n\s*\n')
SENTENCE_BREAK = re.compile(r'(?<=[.!?])\s+')
SCENE_HEADING = re.compile(SCENE_HEADING_PATTERN, re.MULTILINE)

# (text, joiner used before it inside a chunk, whole structural unit?)
_Piece = Tuple[str, str, bool]


class ChunkUnit(Enum):
    """Unit in which a chunk's maximum size is expressed."""
    CHARS = "chars"
    TOKENS = "tokens"


class ChunkStrategy(Enum):
    """Largest structural boundary to split on."""
    PARAGRAPH = "paragraph"
    SCENE = "scene"
    SENTENCE = "sentence"


def estimate_tokens(text: str) -> int:
    """Approximate token count of a text."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


@dataclass(frozen=True)
class Chunk:
    """An ordered, bounded slice of a document."""
    index: int
    text: str
    approx_token_estimate: int
    preserve_spacing: bool = True

    @property
    def length(self) -> int:
        return len(self.text)

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "text": self.text,
            "approx_token_estimate": self.approx_token_estimate,
            "preserve_spacing": self.preserve_spacing,
        }


@dataclass(frozen=True)
class ChunkPolicy:
    """Maximum chunk size and splitting granularity."""
    max_size: int
    unit: ChunkUnit = ChunkUnit.CHARS
    strategy: ChunkStrategy = ChunkStrategy.PARAGRAPH

    def __post_init__(self):
        if self.max_size <= 0:
            raise ChunkingError(
                f"Chunk size must be positive, got {self.max_size}",
                {"max_size": self.max_size}
            )

    def measure(self, text: str) -> int:
        if self.unit is ChunkUnit.TOKENS:
            return estimate_tokens(text)
        return len(text)

    def fits(self, text: str) -> bool:
        return self.measure(text) <= self.max_size

    @property
    def max_chars(self) -> int:
        if self.unit is ChunkUnit.TOKENS:
            return self.max_size * CHARS_PER_TOKEN
        return self.max_size


class TextChunker:
    """
    Greedy structural chunker.

    Units are packed into the current chunk while the joined text still fits
    the policy; a unit that is too large on its own is split on sentence
    boundaries, and a sentence that is still too large is split on whitespace
    (or raw characters as a last resort).
    """

    def chunk(self, text: str, policy: ChunkPolicy) -> List[Chunk]:
        """
        Split text into chunks.

        Args:
            text: Document text
            policy: Size limit and splitting strategy

        Returns:
            Chunks in document order, indices contiguous from 0
        """
        if not text or not text.strip():
            return []

        if policy.fits(text):
            return [Chunk(0, text, estimate_tokens(text), True)]

        pieces: List[_Piece] = []
        for unit in self._split_units(text, policy.strategy):
            if policy.fits(unit):
                pieces.append((unit, CHUNK_SEPARATOR, True))
            else:
                pieces.extend(self._split_oversized(unit, policy))

        chunks = self._pack(pieces, policy)
        logger.debug(
            f"Split {len(text)} chars into {len(chunks)} chunks "
            f"(max {policy.max_size} {policy.unit.value}, {policy.strategy.value})"
        )
        return chunks

    def _split_units(self, text: str, strategy: ChunkStrategy) -> List[str]:
        if strategy is ChunkStrategy.SCENE:
            scenes = self._split_scenes(text)
            if len(scenes) > 1:
                return scenes
        if strategy is ChunkStrategy.SENTENCE:
            return self._split_sentences(text)
        return self._split_paragraphs(text)

    @staticmethod
    def _split_paragraphs(text: str) -> List[str]:
        parts = (p.strip('\r\n') for p in PARAGRAPH_BREAK.split(text))
        return [p for p in parts if p.strip()]

    @staticmethod
    def _split_sentences(text: str) -> List[str]:
        return [s for s in SENTENCE_BREAK.split(text.strip()) if s.strip()]

    @staticmethod
    def _split_scenes(text: str) -> List[str]:
        starts = [m.start() for m in SCENE_HEADING.finditer(text)]
        if not starts:
            return [text]
        if starts[0] != 0:
            starts.insert(0, 0)
        bounds = zip(starts, starts[1:] + [len(text)])
        parts = (text[start:end].strip('\r\n') for start, end in bounds)
        return [p for p in parts if p.strip()]

    def _split_oversized(self, unit: str, policy: ChunkPolicy) -> List[_Piece]:
        pieces: List[_Piece] = []

        paragraphs = self._split_paragraphs(unit)
        if len(paragraphs) > 1:
            for para in paragraphs:
                if policy.fits(para):
                    pieces.append((para, CHUNK_SEPARATOR, True))
                else:
                    pieces.extend(self._split_oversized(para, policy))
            return pieces

        joiner = CHUNK_SEPARATOR
        for sentence in self._split_sentences(unit):
            if policy.fits(sentence):
                pieces.append((sentence, joiner, False))
            else:
                for fragment in self._hard_split(sentence, policy):
                    pieces.append((fragment, joiner, False))
                    joiner = " "
            joiner = " "
        return pieces

    @staticmethod
    def _hard_split(sentence: str, policy: ChunkPolicy) -> List[str]:
        limit = policy.max_chars
        fragments: List[str] = []
        current = ""
        for word in sentence.split():
            while len(word) > limit:
                if current:
                    fragments.append(current)
                    current = ""
                fragments.append(word[:limit])
                word = word[limit:]
            if not word:
                continue
            candidate = f"{current} {word}" if current else word
            if len(candidate) <= limit:
                current = candidate
            else:
                fragments.append(current)
                current = word
        if current:
            fragments.append(current)
        return fragments

    @staticmethod
    def _pack(pieces: List[_Piece], policy: ChunkPolicy) -> List[Chunk]:
        chunks: List[Chunk] = []
        current: Optional[str] = None
        intact = True

        def flush():
            chunks.append(Chunk(len(chunks), current, estimate_tokens(current), intact))

        for text, joiner, whole in pieces:
            if current is None:
                current, intact = text, whole
                continue
            candidate = current + joiner + text
            if policy.fits(candidate):
                current = candidate
                intact = intact and whole
            else:
                flush()
                current, intact = text, whole

        if current is not None:
            flush()
        return chunks


def plan_chunk_policy(
    config: ChunkingConfig,
    context_window: Optional[int],
    is_local: bool
) -> Optional[ChunkPolicy]:
    """
    Decide how documents should be chunked for a provider/model.

    Args:
        config: Chunking configuration
        context_window: Model context window in tokens, None when unknown
        is_local: Whether the provider is self-hosted

    Returns:
        None when the model's context is large enough to take whole
        documents, otherwise the policy to chunk with
    """
    if not is_local and context_window and context_window >= config.high_context_threshold:
        return None

    try:
        unit = ChunkUnit(config.unit)
        strategy = ChunkStrategy(config.strategy)
    except ValueError as e:
        raise InvalidConfigError(f"Invalid chunking configuration: {e}")

    max_size = config.max_chunk_size
    if context_window:
        budget_tokens = int(context_window * config.context_fraction)
        budget = budget_tokens if unit is ChunkUnit.TOKENS else budget_tokens * CHARS_PER_TOKEN
        max_size = min(max_size, budget)

    return ChunkPolicy(max(1, max_size), unit, strategy)
