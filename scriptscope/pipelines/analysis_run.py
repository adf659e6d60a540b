"""
ScriptScope Analysis Run Coordinator

Drives a document through every selected analysis type:
cache lookup -> (per type) chunking -> invocation -> reconciliation ->
checkpoint. Per-type failures are recorded and the run moves on; only
cancellation stops a run early.
"""

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from scriptscope.core.config import ScriptScopeConfig, get_config
from scriptscope.core.constants import ProviderKind
from scriptscope.core.exceptions import AnalysisError, ProviderError
from scriptscope.core.logging_config import get_logger
from scriptscope.analysis.catalog import AnalysisCatalog, AnalysisTypeSpec, default_catalog
from scriptscope.analysis.models import (
    AnalysisStatus,
    AnalysisTypeResult,
    ChunkResult,
    Document,
    ReconciledDocumentAnalysis,
    RunState,
    add_usage,
    type_set_fingerprint,
)
from scriptscope.analysis.normalizer import normalize
from scriptscope.analysis.reconciler import ResultReconciler, join_texts, synthesize_text
from scriptscope.llm.model_registry import context_window_for, is_local_provider
from scriptscope.llm.provider import GenerationOptions, ReasoningProvider
from scriptscope.pipelines.cancellation import CancellationToken
from scriptscope.pipelines.chunk_invoker import ChunkAnalysisInvoker, ChunkProgress, InvocationOutcome
from scriptscope.pipelines.events import ProgressChannel, ProgressEvent
from scriptscope.storage.checkpoint_manager import AnalysisCheckpointManager
from scriptscope.storage.kv_store import KeyValueStore
from scriptscope.utils.chunk_manager import Chunk, ChunkPolicy, TextChunker, estimate_tokens, plan_chunk_policy

logger = get_logger("pipelines.analysis_run")


class RunPhase(Enum):
    IDLE = "idle"
    PLANNING = "planning"
    CHUNKING = "chunking"
    INVOKING = "invoking"
    RECONCILING = "reconciling"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AnalysisRunCoordinator:
    """
    Top-level state machine for multi-type analysis runs.

    Usage:
        coordinator = AnalysisRunCoordinator(provider, JsonFileStore(".scriptscope/analysis"))
        coordinator.channel.subscribe(lambda e: print(e.message))
        analysis = await coordinator.start_run(Document(text, "pilot.fountain"), ["breakdown", "plot"])
    """

    def __init__(
        self,
        provider: ReasoningProvider,
        store: KeyValueStore,
        catalog: Optional[AnalysisCatalog] = None,
        config: Optional[ScriptScopeConfig] = None,
        channel: Optional[ProgressChannel] = None,
        provider_kind: Optional[ProviderKind] = None,
        model: Optional[str] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.provider = provider
        self.catalog = catalog or default_catalog()
        self.config = config or get_config()
        self.channel = channel or ProgressChannel()
        self.checkpoints = AnalysisCheckpointManager(store)
        self.provider_kind = provider_kind or self.config.provider.kind
        self.model = model or self.config.provider.model
        self.token = CancellationToken()
        self.chunker = TextChunker()
        self.reconciler = ResultReconciler()
        self.options = GenerationOptions(
            temperature=self.config.provider.temperature,
            max_output_tokens=self.config.provider.max_output_tokens,
        )
        self.invoker = ChunkAnalysisInvoker(
            provider,
            inter_request_delay=self.config.pacing.inter_request_delay,
            skip_delay_for_local=self.config.pacing.skip_delay_for_local,
            sleep=sleep,
            default_options=self.options,
        )
        self._phase = RunPhase.IDLE
        self._running = False
        self._chunks: Optional[List[Chunk]] = None
        self._total_types = 0

    @property
    def phase(self) -> RunPhase:
        return self._phase

    def _set_phase(self, phase: RunPhase) -> None:
        if phase is not self._phase:
            logger.debug(f"Phase: {self._phase.value} -> {phase.value}")
        self._phase = phase

    def cancel_run(self) -> None:
        """Request cooperative cancellation of the current run."""
        self.token.cancel()

    async def _emit(self, message: str, progress: float, state: Optional[RunState] = None, **kwargs) -> None:
        completed = len(state.completed) if state is not None else kwargs.pop("completed_types", 0)
        await self.channel.publish(ProgressEvent(
            message=message,
            progress_percent=round(max(0.0, min(100.0, progress)), 1),
            phase=self._phase.value,
            completed_types=completed,
            total_types=self._total_types,
            **kwargs,
        ))

    def _percent(self, completed_types: int, chunk_fraction: float = 0.0) -> float:
        if not self._total_types:
            return 100.0
        return (completed_types + chunk_fraction) / self._total_types * 100

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    async def start_run(
        self,
        document: Document,
        selected_type_ids: List[str],
        force_refresh: bool = False,
        language: Optional[str] = None
    ) -> ReconciledDocumentAnalysis:
        """
        Analyze a document with the selected analysis types.

        Args:
            document: Document to analyze
            selected_type_ids: Catalog ids, processed in this order
            force_refresh: Ignore cached analyses and checkpoints
            language: Output language, defaults to the configured one

        Returns:
            ReconciledDocumentAnalysis holding one result per finished type;
            cancelled runs list unfinished types under pending

        Raises:
            UnknownAnalysisTypeError: If any id is not in the catalog
        """
        type_ids = list(dict.fromkeys(selected_type_ids))
        specs = self.catalog.resolve(type_ids)
        if not specs:
            raise AnalysisError("No analysis types selected")
        if self._running:
            raise AnalysisError("An analysis run is already in progress")

        self._running = True
        try:
            return await self._run(document, type_ids, specs, force_refresh, language or self.config.output_language)
        finally:
            self._running = False
            self._chunks = None

    async def _run(
        self,
        document: Document,
        type_ids: List[str],
        specs: List[AnalysisTypeSpec],
        force_refresh: bool,
        language: str
    ) -> ReconciledDocumentAnalysis:
        self.token.reset()
        self._total_types = len(specs)
        self._set_phase(RunPhase.PLANNING)
        logger.info(f"Starting analysis of {document.name}: {', '.join(type_ids)}")
        await self._emit(f"Starting analysis of {document.name}", 0.0)

        if not force_refresh:
            cached = await self._lookup_cache(document, type_ids)
            if cached is not None:
                self._set_phase(RunPhase.COMPLETED)
                logger.info(f"Using cached analysis for {document.name}")
                await self._emit("Loaded cached analysis", 100.0, completed_types=len(cached.results))
                return cached

        fingerprint = type_set_fingerprint(type_ids)
        if force_refresh:
            await self.checkpoints.discard_run_state(document, fingerprint)
            state = RunState(document.document_id, type_ids)
        else:
            state = await self._resume_state(document, type_ids)

        policy = self._plan_policy()

        for spec in specs:
            if spec.id in state.completed:
                continue
            if self.token.cancelled:
                break

            result = await self._run_type(document, spec, policy, state, language)
            if result is None:
                break

            self._set_phase(RunPhase.PERSISTING)
            state.record(result)
            await self.checkpoints.save_run_state(document, state)
            await self.checkpoints.save_type_result(document, result)

            if result.succeeded:
                await self._emit(f"{spec.name} completed", self._percent(len(state.completed)), state,
                                 current_type=spec.id)
            else:
                await self._emit(f"{spec.name} failed: {result.error}", self._percent(len(state.completed)), state,
                                 current_type=spec.id)

        if state.remaining:
            return await self._finish_cancelled(document, state)

        analysis = ReconciledDocumentAnalysis.build(document, type_ids, state.completed)
        self._set_phase(RunPhase.PERSISTING)
        if self.config.cache.enabled:
            await self.checkpoints.save_cached_analysis(document, analysis)
        await self.checkpoints.discard_run_state(document, fingerprint)

        self._set_phase(RunPhase.COMPLETED)
        logger.info(
            f"Analysis of {document.name} finished: "
            f"{analysis.succeeded_count} completed, {analysis.failed_count} failed"
        )
        await self._emit("Analysis complete", 100.0, state)
        return analysis

    async def _finish_cancelled(self, document: Document, state: RunState) -> ReconciledDocumentAnalysis:
        state.cancelled = True
        await self.checkpoints.save_run_state(document, state)
        analysis = ReconciledDocumentAnalysis.build(document, state.selected_types, state.completed, cancelled=True)
        self._set_phase(RunPhase.CANCELLED)
        logger.info(f"Analysis of {document.name} cancelled; pending: {', '.join(analysis.pending)}")
        await self._emit("Analysis cancelled", self._percent(len(state.completed)), state)
        return analysis

    # -------------------------------------------------------------------------
    # Planning
    # -------------------------------------------------------------------------

    async def _lookup_cache(self, document: Document, type_ids: List[str]) -> Optional[ReconciledDocumentAnalysis]:
        cache = self.config.cache
        if not cache.enabled or len(type_ids) < cache.full_analysis_threshold:
            return None
        cached = await self.checkpoints.load_cached_analysis(document)
        if cached is None:
            return None
        if set(cached.selected_types) != set(type_ids) or not cached.is_complete or cached.failed_count:
            logger.debug(f"Cached analysis for {document.name} does not match the selection")
            return None
        return cached

    async def _resume_state(self, document: Document, type_ids: List[str]) -> RunState:
        """Load a checkpoint for this selection and adopt completed per-type entries."""
        state = await self.checkpoints.load_run_state(document, type_set_fingerprint(type_ids))
        if state is None:
            state = RunState(document.document_id, type_ids)
        else:
            state.selected_types = list(type_ids)
            state.cancelled = False
            state.completed = {
                type_id: result for type_id, result in state.completed.items()
                if type_id in type_ids and result.succeeded
            }

        for type_id in state.remaining:
            prior = await self.checkpoints.load_type_result(document, type_id)
            if prior is not None and prior.succeeded:
                state.record(prior)

        if state.completed:
            logger.info(f"Resuming {document.name}: {len(state.completed)} types already completed")
        return state

    def _plan_policy(self) -> Optional[ChunkPolicy]:
        is_local = self.provider.is_local or is_local_provider(self.provider_kind)
        context_window = context_window_for(self.provider_kind, self.model)
        return plan_chunk_policy(self.config.chunking, context_window, is_local)

    def _chunks_for(self, document: Document, spec: AnalysisTypeSpec, policy: Optional[ChunkPolicy]) -> List[Chunk]:
        if not document.text.strip():
            return []
        if not spec.chunkable or policy is None:
            return [Chunk(0, document.text, estimate_tokens(document.text), True)]
        if self._chunks is None:
            self._chunks = self.chunker.chunk(document.text, policy)
            logger.info(f"Split {document.name} into {len(self._chunks)} chunks (max {policy.max_size} {policy.unit.value})")
        return self._chunks

    # -------------------------------------------------------------------------
    # Per type
    # -------------------------------------------------------------------------

    async def _run_type(
        self,
        document: Document,
        spec: AnalysisTypeSpec,
        policy: Optional[ChunkPolicy],
        state: RunState,
        language: str
    ) -> Optional[AnalysisTypeResult]:
        """Run one analysis type. Returns None when cancelled mid-type."""
        done = len(state.completed)
        self._set_phase(RunPhase.CHUNKING)
        await self._emit(f"Running {spec.name}", self._percent(done), state, current_type=spec.id)
        chunks = self._chunks_for(document, spec, policy)

        async def on_chunk_start(chunk: Chunk, total: int) -> None:
            await self._emit(
                f"{spec.name}: analyzing part {chunk.index + 1}/{total}",
                self._percent(done, chunk.index / total), state,
                current_type=spec.id, current_chunk=chunk.index + 1, total_chunks=total,
            )

        async def on_progress(progress: ChunkProgress) -> None:
            await self._emit(
                f"{spec.name}: part {progress.completed_chunks}/{progress.total_chunks} done",
                self._percent(done, progress.completed_chunks / progress.total_chunks), state,
                current_type=spec.id, current_chunk=progress.completed_chunks, total_chunks=progress.total_chunks,
            )

        self._set_phase(RunPhase.INVOKING)
        outcome = await self.invoker.invoke(
            chunks, spec, self.token,
            on_progress=on_progress,
            language=language,
            on_chunk_start=on_chunk_start,
        )
        if outcome.cancelled:
            logger.info(f"{spec.id}: discarding {len(outcome.responses)} partial chunk results")
            return None

        self._set_phase(RunPhase.RECONCILING)
        return await self._reconcile_type(spec, outcome, len(chunks), language)

    async def _reconcile_type(
        self,
        spec: AnalysisTypeSpec,
        outcome: InvocationOutcome,
        chunk_count: int,
        language: str
    ) -> Optional[AnalysisTypeResult]:
        failed = outcome.failed
        metadata: Dict[str, Any] = {}
        if failed:
            metadata["chunk_errors"] = [dict(chunk_index=r.chunk_index, **r.error.to_dict()) for r in failed]
        usage: Dict[str, Any] = {}
        for response in outcome.succeeded:
            add_usage(usage, response.usage)
        if usage:
            metadata["usage"] = usage

        def build(result: Any, status: AnalysisStatus, error: Optional[str] = None) -> AnalysisTypeResult:
            return AnalysisTypeResult(
                type=spec.id,
                name=spec.name,
                result=result,
                status=status,
                error=error,
                chunk_count=chunk_count,
                failed_chunks=len(failed),
                metadata=metadata,
            )

        if chunk_count == 0:
            logger.info(f"{spec.id}: empty document, nothing to analyze")
            return build({} if spec.structured else "", AnalysisStatus.COMPLETED)

        succeeded = outcome.succeeded
        if not succeeded:
            message = failed[0].error.user_message or failed[0].error.message
            logger.warning(f"{spec.id}: all {chunk_count} chunks failed")
            return build(None, AnalysisStatus.FAILED, message)

        if spec.structured:
            chunk_results = []
            repairs = {}
            for response in outcome.responses:
                normalized = normalize(response.text) if response.ok else None
                if normalized is not None and normalized.repairs_applied:
                    repairs[str(response.chunk_index)] = normalized.repairs_applied
                chunk_results.append(ChunkResult(response.chunk_index, normalized, response.error))
            if repairs:
                metadata["repairs_applied"] = repairs
            return build(self.reconciler.reconcile(chunk_results), AnalysisStatus.COMPLETED)

        texts = [r.text for r in succeeded]
        if len(texts) > 1 and self.token.cancelled:
            return None
        try:
            text = await synthesize_text(spec, texts, self.provider, language, self.invoker.options_for(spec))
        except ProviderError as e:
            logger.warning(f"{spec.id}: synthesis failed ({e.kind.value}): {e.message}")
            return build(join_texts(texts), AnalysisStatus.FAILED, e.user_message)
        # Synthesis only calls the provider for two or more non-blank parts
        if sum(1 for t in texts if t and t.strip()) > 1 and self.provider.last_usage:
            metadata["usage"] = add_usage(usage, self.provider.last_usage)
        return build(text.strip(), AnalysisStatus.COMPLETED)
