"""
Tests for Chunk Analysis Invoker

Tests for scriptscope/pipelines/chunk_invoker.py
"""

import pytest
from unittest.mock import AsyncMock

from scriptscope.analysis.catalog import default_catalog
from scriptscope.core.exceptions import ProviderError, ProviderErrorKind
from scriptscope.pipelines.cancellation import CancellationToken
from scriptscope.pipelines.chunk_invoker import ChunkAnalysisInvoker
from scriptscope.utils.chunk_manager import Chunk


def _chunks(count):
    return [Chunk(i, f"Paragraph {i}.", 3) for i in range(count)]


@pytest.fixture
def spec():
    return default_catalog().get("breakdown")


@pytest.fixture
def sleep():
    return AsyncMock()


class TestChunkAnalysisInvoker:
    """Tests for ChunkAnalysisInvoker."""

    @pytest.mark.asyncio
    async def test_empty_chunk_list_is_noop(self, make_provider, spec, sleep):
        provider = make_provider()
        outcome = await ChunkAnalysisInvoker(provider, sleep=sleep).invoke([], spec)

        assert outcome.responses == []
        assert not outcome.cancelled
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_sequential_in_order(self, make_provider, spec, sleep):
        provider = make_provider(["r0", "r1", "r2"])
        outcome = await ChunkAnalysisInvoker(provider, sleep=sleep).invoke(_chunks(3), spec, language="Turkish")

        assert [r.text for r in outcome.responses] == ["r0", "r1", "r2"]
        assert [r.chunk_index for r in outcome.responses] == [0, 1, 2]
        assert "Paragraph 0." in provider.calls[0]["user"]
        assert "part 1 of 3" in provider.calls[0]["user"]
        assert "Turkish" in provider.calls[0]["system"]

    @pytest.mark.asyncio
    async def test_spec_options_override_defaults(self, make_provider, spec, sleep):
        provider = make_provider(["{}"])
        await ChunkAnalysisInvoker(provider, sleep=sleep).invoke(_chunks(1), spec)

        assert provider.calls[0]["options"].temperature == spec.temperature

    @pytest.mark.asyncio
    async def test_cancel_after_second_of_five(self, make_provider, spec, sleep):
        provider = make_provider(["a", "b", "c", "d", "e"])
        token = CancellationToken()

        def on_progress(progress):
            if progress.completed_chunks == 2:
                token.cancel()

        outcome = await ChunkAnalysisInvoker(provider, sleep=sleep).invoke(
            _chunks(5), spec, token, on_progress=on_progress
        )

        assert outcome.cancelled
        assert len(outcome.responses) == 2
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, make_provider, spec, sleep):
        provider = make_provider()
        token = CancellationToken()
        token.cancel()

        outcome = await ChunkAnalysisInvoker(provider, sleep=sleep).invoke(_chunks(3), spec, token)

        assert outcome.cancelled
        assert outcome.responses == []
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_chunk_failure_does_not_stop_siblings(self, make_provider, spec, sleep):
        provider = make_provider([
            "first",
            ProviderError(ProviderErrorKind.RATE_LIMITED, "429"),
            "third",
        ])
        outcome = await ChunkAnalysisInvoker(provider, sleep=sleep).invoke(_chunks(3), spec)

        assert len(outcome.responses) == 3
        assert [r.chunk_index for r in outcome.failed] == [1]
        assert outcome.failed[0].error.kind == "rate_limited"
        assert outcome.failed[0].error.user_message
        assert [r.text for r in outcome.succeeded] == ["first", "third"]

    @pytest.mark.asyncio
    async def test_delay_after_successful_chunks_except_last(self, make_provider, spec, sleep):
        provider = make_provider([
            "ok",
            ProviderError(ProviderErrorKind.SERVER_ERROR, "500"),
            "ok",
            "ok",
        ])
        invoker = ChunkAnalysisInvoker(provider, inter_request_delay=2.0, sleep=sleep)
        await invoker.invoke(_chunks(4), spec)

        assert sleep.await_count == 2
        sleep.assert_awaited_with(2.0)

    @pytest.mark.asyncio
    async def test_no_delay_for_local_provider(self, make_provider, spec, sleep):
        provider = make_provider(["a", "b", "c"], is_local=True)
        await ChunkAnalysisInvoker(provider, inter_request_delay=2.0, sleep=sleep).invoke(_chunks(3), spec)

        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_progress_reported_after_every_chunk(self, make_provider, spec, sleep):
        provider = make_provider(["a", ProviderError(ProviderErrorKind.NETWORK, "down"), "c"])
        seen = []
        started = []

        await ChunkAnalysisInvoker(provider, sleep=sleep).invoke(
            _chunks(3), spec,
            on_progress=lambda p: seen.append((p.completed_chunks, p.total_chunks, p.current_type)),
            on_chunk_start=lambda chunk, total: started.append(chunk.index),
        )

        assert seen == [(1, 3, "breakdown"), (2, 3, "breakdown"), (3, 3, "breakdown")]
        assert started == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self, make_provider, spec, sleep):
        provider = make_provider([ValueError("bug")])

        with pytest.raises(ValueError):
            await ChunkAnalysisInvoker(provider, sleep=sleep).invoke(_chunks(2), spec)
