"""
Tests for Chunk Manager

Tests for scriptscope/utils/chunk_manager.py
"""

import pytest

from scriptscope.core.config import ChunkingConfig
from scriptscope.core.exceptions import ChunkingError, InvalidConfigError
from scriptscope.utils.chunk_manager import (
    ChunkPolicy,
    ChunkStrategy,
    ChunkUnit,
    TextChunker,
    estimate_tokens,
    plan_chunk_policy,
)


def _squash(text: str) -> str:
    return "".join(text.split())


@pytest.fixture
def chunker():
    return TextChunker()


class TestChunkPolicy:
    """Tests for ChunkPolicy."""

    def test_non_positive_size_rejected(self):
        with pytest.raises(ChunkingError):
            ChunkPolicy(0)

    def test_token_measure(self):
        policy = ChunkPolicy(2, ChunkUnit.TOKENS)

        assert policy.measure("abcdefgh") == 2
        assert policy.fits("abcdefgh")
        assert not policy.fits("abcdefghi")
        assert policy.max_chars == 8

    def test_estimate_tokens(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcde") == 2


class TestTextChunker:
    """Tests for TextChunker."""

    def test_empty_document(self, chunker):
        assert chunker.chunk("", ChunkPolicy(10)) == []
        assert chunker.chunk("  \n\n \t", ChunkPolicy(10)) == []

    def test_small_document_single_chunk(self, chunker, sample_screenplay):
        chunks = chunker.chunk(sample_screenplay, ChunkPolicy(len(sample_screenplay)))

        assert len(chunks) == 1
        assert chunks[0].text == sample_screenplay
        assert chunks[0].index == 0
        assert chunks[0].preserve_spacing is True

    @pytest.mark.parametrize("max_size", [2, 3])
    def test_paragraphs_split(self, chunker, max_size):
        chunks = chunker.chunk("A\n\nB\n\nC", ChunkPolicy(max_size))

        assert [c.text for c in chunks] == ["A", "B", "C"]
        assert [c.index for c in chunks] == [0, 1, 2]
        assert all(c.length == 1 for c in chunks)

    def test_paragraphs_packed_greedily(self, chunker):
        chunks = chunker.chunk("A\n\nB\n\nC", ChunkPolicy(4))

        assert [c.text for c in chunks] == ["A\n\nB", "C"]

    @pytest.mark.parametrize("max_size", [8, 15, 25, 60, 120])
    def test_reconstructs_document(self, chunker, sample_screenplay, max_size):
        policy = ChunkPolicy(max_size)
        chunks = chunker.chunk(sample_screenplay, policy)

        assert [c.index for c in chunks] == list(range(len(chunks)))
        assert all(policy.fits(c.text) for c in chunks)
        assert _squash("".join(c.text for c in chunks)) == _squash(sample_screenplay)

    def test_oversized_paragraph_split_on_sentences(self, chunker):
        text = "One two. Three four. Five six."
        chunks = chunker.chunk(text, ChunkPolicy(12))

        assert [c.text for c in chunks] == ["One two.", "Three four.", "Five six."]
        assert all(c.preserve_spacing is False for c in chunks)

    def test_long_word_hard_split(self, chunker):
        text = "x" * 25
        chunks = chunker.chunk(text, ChunkPolicy(10))

        assert [c.length for c in chunks] == [10, 10, 5]
        assert "".join(c.text for c in chunks) == text

    def test_scene_strategy_keeps_headings(self, chunker):
        text = (
            "INT. OFFICE - DAY\nSam types.\nSam sighs.\n"
            "EXT. ROOF - NIGHT\nSam smokes.\nSam waits."
        )
        chunks = chunker.chunk(text, ChunkPolicy(40, strategy=ChunkStrategy.SCENE))

        assert len(chunks) == 2
        assert chunks[0].text.startswith("INT. OFFICE")
        assert chunks[1].text.startswith("EXT. ROOF")

    def test_token_policy(self, chunker, sample_screenplay):
        policy = ChunkPolicy(10, ChunkUnit.TOKENS)
        chunks = chunker.chunk(sample_screenplay, policy)

        assert len(chunks) > 1
        assert all(c.approx_token_estimate <= 10 for c in chunks)


class TestPlanChunkPolicy:
    """Tests for plan_chunk_policy."""

    def test_high_context_remote_skips_chunking(self):
        assert plan_chunk_policy(ChunkingConfig(), 128000, is_local=False) is None

    def test_local_always_chunks(self):
        policy = plan_chunk_policy(ChunkingConfig(), 128000, is_local=True)

        assert policy is not None
        assert policy.max_size == 12000

    def test_small_context_caps_size(self):
        policy = plan_chunk_policy(ChunkingConfig(), 2000, is_local=False)

        assert policy.max_size == 4000
        assert policy.unit is ChunkUnit.CHARS

    def test_unknown_context_uses_configured_size(self):
        policy = plan_chunk_policy(ChunkingConfig(max_chunk_size=3000), None, is_local=False)

        assert policy.max_size == 3000

    def test_token_unit(self):
        policy = plan_chunk_policy(ChunkingConfig(unit="tokens"), 8192, is_local=False)

        assert policy.max_size == 4096
        assert policy.unit is ChunkUnit.TOKENS

    def test_invalid_strategy(self):
        with pytest.raises(InvalidConfigError):
            plan_chunk_policy(ChunkingConfig(strategy="chapter"), None, is_local=True)
