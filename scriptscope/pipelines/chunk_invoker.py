"""
ScriptScope Chunk Analysis Invoker

Sends one request per chunk, strictly in index order, with cooperative
cancellation and fixed pacing between remote requests.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional

from scriptscope.core.constants import DEFAULT_INTER_REQUEST_DELAY, DEFAULT_OUTPUT_LANGUAGE
from scriptscope.core.exceptions import ProviderError
from scriptscope.core.logging_config import get_logger
from scriptscope.analysis.catalog import AnalysisTypeSpec
from scriptscope.analysis.models import ChunkError, RawAnalysisResponse
from scriptscope.llm.provider import GenerationOptions, ReasoningProvider
from scriptscope.pipelines.cancellation import CancellationToken
from scriptscope.utils.chunk_manager import Chunk

logger = get_logger("pipelines.chunk_invoker")


@dataclass
class ChunkProgress:
    completed_chunks: int
    total_chunks: int
    current_type: str


@dataclass
class InvocationOutcome:
    """Responses gathered for one analysis type, in chunk order."""
    responses: List[RawAnalysisResponse] = field(default_factory=list)
    cancelled: bool = False

    @property
    def succeeded(self) -> List[RawAnalysisResponse]:
        return [r for r in self.responses if r.ok]

    @property
    def failed(self) -> List[RawAnalysisResponse]:
        return [r for r in self.responses if not r.ok]


async def _notify(callback: Optional[Callable[..., Any]], *args) -> None:
    if callback is None:
        return
    result = callback(*args)
    if asyncio.iscoroutine(result):
        await result


class ChunkAnalysisInvoker:
    """Runs an analysis type over a list of chunks."""

    def __init__(
        self,
        provider: ReasoningProvider,
        inter_request_delay: float = DEFAULT_INTER_REQUEST_DELAY,
        skip_delay_for_local: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        default_options: Optional[GenerationOptions] = None
    ):
        self.provider = provider
        self.inter_request_delay = inter_request_delay
        self.skip_delay_for_local = skip_delay_for_local
        self._sleep = sleep
        self.default_options = default_options or GenerationOptions()

    def options_for(self, spec: AnalysisTypeSpec) -> GenerationOptions:
        return GenerationOptions(
            temperature=spec.temperature if spec.temperature is not None else self.default_options.temperature,
            max_output_tokens=spec.max_output_tokens or self.default_options.max_output_tokens,
        )

    @property
    def paced(self) -> bool:
        if self.inter_request_delay <= 0:
            return False
        return not (self.skip_delay_for_local and self.provider.is_local)

    async def invoke(
        self,
        chunks: List[Chunk],
        spec: AnalysisTypeSpec,
        token: Optional[CancellationToken] = None,
        on_progress: Optional[Callable[[ChunkProgress], Any]] = None,
        language: str = DEFAULT_OUTPUT_LANGUAGE,
        on_chunk_start: Optional[Callable[[Chunk, int], Any]] = None
    ) -> InvocationOutcome:
        """
        Analyze chunks sequentially.

        Args:
            chunks: Chunks in index order; an empty list is a no-op
            spec: Analysis type to run
            token: Checked before every request
            on_progress: Called after every chunk with a ChunkProgress
            language: Output language rendered into the prompts
            on_chunk_start: Called before every request with (chunk, total)

        Returns:
            InvocationOutcome with one response per attempted chunk. Provider
            failures become per-chunk error entries; cancellation returns
            what was gathered so far with cancelled=True.
        """
        outcome = InvocationOutcome()
        total = len(chunks)
        options = self.options_for(spec)

        for position, chunk in enumerate(chunks):
            if token is not None and token.cancelled:
                logger.info(f"{spec.id}: cancelled after {len(outcome.responses)}/{total} chunks")
                outcome.cancelled = True
                return outcome

            await _notify(on_chunk_start, chunk, total)
            request = spec.build_request(chunk, total, language)
            try:
                text = await self.provider.generate(request.system_prompt, request.user_prompt, options)
                response = RawAnalysisResponse(
                    chunk_index=chunk.index,
                    text=text,
                    usage=self.provider.last_usage,
                )
            except ProviderError as e:
                logger.warning(f"{spec.id}: chunk {chunk.index + 1}/{total} failed ({e.kind.value}): {e.message}")
                response = RawAnalysisResponse(chunk_index=chunk.index, error=ChunkError.from_exception(e))

            outcome.responses.append(response)
            await _notify(on_progress, ChunkProgress(len(outcome.responses), total, spec.id))

            is_last = position == total - 1
            if response.ok and not is_last and self.paced and not (token is not None and token.cancelled):
                logger.debug(f"Waiting {self.inter_request_delay}s before next request")
                await self._sleep(self.inter_request_delay)

        return outcome
