"""Checkpoint Manager for ScriptScope analysis runs.

Persists three kinds of entries through a KeyValueStore:
1. The final reconciled analysis of a document (the run cache)
2. The in-flight RunState of a multi-type run, written after every type
3. One entry per analysis type, so a completed type survives a changed selection
"""

import hashlib
import re
from typing import Any, Dict, List, Optional

from scriptscope.core.exceptions import PersistenceError
from scriptscope.core.logging_config import get_logger
from scriptscope.analysis.models import (
    AnalysisTypeResult,
    Document,
    ReconciledDocumentAnalysis,
    RunState,
)
from scriptscope.storage.kv_store import KeyValueStore

logger = get_logger("storage.checkpoint_manager")


class AnalysisCheckpointManager:
    """Manages cached analyses and resumable run checkpoints."""

    ANALYSIS_PREFIX = "analysis_"
    CHECKPOINT_PREFIX = "analysis_checkpoint_"
    _ANALYSIS_KEY = re.compile(r"^analysis_[0-9a-f]{16}$")

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _read(self, key: str) -> Optional[Any]:
        """Stored value for key, or None when it is missing or unreadable."""
        try:
            return self.store.get(key)
        except PersistenceError as e:
            logger.warning(f"Ignoring unreadable entry {key}, starting fresh: {e.message}")
            return None

    # -------------------------------------------------------------------------
    # Keys
    # -------------------------------------------------------------------------

    @staticmethod
    def document_digest(content_hash: str, file_name: str) -> str:
        return hashlib.sha256(f"{content_hash}:{file_name}".encode("utf-8")).hexdigest()[:16]

    def analysis_key(self, content_hash: str, file_name: str) -> str:
        return f"{self.ANALYSIS_PREFIX}{self.document_digest(content_hash, file_name)}"

    def type_key(self, content_hash: str, file_name: str, type_id: str) -> str:
        return f"{self.analysis_key(content_hash, file_name)}_{type_id}"

    def checkpoint_key(self, content_hash: str, file_name: str, fingerprint: str) -> str:
        digest = self.document_digest(content_hash, file_name)
        return f"{self.CHECKPOINT_PREFIX}{digest}_{fingerprint}"

    # -------------------------------------------------------------------------
    # Cached analyses
    # -------------------------------------------------------------------------

    async def load_cached_analysis(self, document: Document) -> Optional[ReconciledDocumentAnalysis]:
        key = self.analysis_key(document.content_hash, document.name)
        data = self._read(key)
        if data is None:
            return None
        try:
            analysis = ReconciledDocumentAnalysis.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed cached analysis {key}: {e}")
            return None
        analysis.from_cache = True
        return analysis

    async def save_cached_analysis(self, document: Document, analysis: ReconciledDocumentAnalysis) -> None:
        key = self.analysis_key(document.content_hash, document.name)
        self.store.set(key, analysis.to_dict())
        logger.info(f"Saved analysis cache for {document.name} ({len(analysis.results)} types)")

    # -------------------------------------------------------------------------
    # Run state
    # -------------------------------------------------------------------------

    async def load_run_state(self, document: Document, fingerprint: str) -> Optional[RunState]:
        key = self.checkpoint_key(document.content_hash, document.name, fingerprint)
        data = self._read(key)
        if data is None:
            return None
        try:
            state = RunState.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed checkpoint {key}: {e}")
            return None
        if state.document_id != document.document_id:
            logger.warning(f"Checkpoint {key} belongs to another document, ignoring")
            return None
        logger.info(f"Loaded checkpoint for {document.name}: {len(state.completed)} types recorded")
        return state

    async def save_run_state(self, document: Document, state: RunState) -> None:
        key = self.checkpoint_key(document.content_hash, document.name, state.fingerprint)
        self.store.set(key, state.to_dict())
        logger.debug(f"Checkpoint written: {key} ({len(state.remaining)} remaining)")

    async def discard_run_state(self, document: Document, fingerprint: str) -> None:
        self.store.delete(self.checkpoint_key(document.content_hash, document.name, fingerprint))

    # -------------------------------------------------------------------------
    # Per-type results
    # -------------------------------------------------------------------------

    async def load_type_result(self, document: Document, type_id: str) -> Optional[AnalysisTypeResult]:
        key = self.type_key(document.content_hash, document.name, type_id)
        data = self._read(key)
        if data is None:
            return None
        try:
            return AnalysisTypeResult.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed type result {key}: {e}")
            return None

    async def save_type_result(self, document: Document, result: AnalysisTypeResult) -> None:
        key = self.type_key(document.content_hash, document.name, result.type)
        self.store.set(key, result.to_dict())
        logger.debug(f"Saved {result.type} result ({result.status.value})")

    # -------------------------------------------------------------------------
    # Housekeeping
    # -------------------------------------------------------------------------

    async def clear_document(self, content_hash: str, file_name: str) -> int:
        """Delete every entry stored for a document. Returns the count removed."""
        digest = self.document_digest(content_hash, file_name)
        keys = self.store.keys(f"{self.ANALYSIS_PREFIX}{digest}")
        keys += self.store.keys(f"{self.CHECKPOINT_PREFIX}{digest}")
        for key in keys:
            self.store.delete(key)
        logger.info(f"Cleared {len(keys)} stored entries for {file_name}")
        return len(keys)

    async def list_cached_analyses(self) -> List[Dict[str, Any]]:
        """Summaries of every cached full analysis."""
        summaries = []
        for key in self.store.keys(self.ANALYSIS_PREFIX):
            if not self._ANALYSIS_KEY.match(key):
                continue
            data = self._read(key)
            if not isinstance(data, dict):
                continue
            summaries.append({
                "key": key,
                "file_name": data.get("file_name", ""),
                "selected_types": data.get("selected_types", []),
                "created": data.get("created", ""),
                "cancelled": data.get("cancelled", False),
            })
        return summaries
