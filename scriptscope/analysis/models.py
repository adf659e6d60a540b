"""
ScriptScope Analysis Data Model

Documents, requests, responses and the per-run state that is checkpointed
after every analysis type. Every persisted type round-trips through
to_dict()/from_dict() as plain JSON.
"""

import hashlib
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from scriptscope.core.exceptions import ProviderError


def type_set_fingerprint(type_ids: List[str]) -> str:
    """Order-independent fingerprint of a set of analysis type ids."""
    joined = "|".join(sorted(set(type_ids)))
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()[:12]


@dataclass(frozen=True)
class Document:
    """Raw document text plus its display name."""
    text: str
    name: str

    @property
    def content_hash(self) -> str:
        return hashlib.sha256(self.text.encode("utf-8")).hexdigest()

    @property
    def document_id(self) -> str:
        return f"{self.content_hash[:16]}:{self.name}"


@dataclass(frozen=True)
class AnalysisRequest:
    """A fully resolved, self-contained request for one chunk."""
    chunk_index: int
    analysis_type: str
    system_prompt: str
    user_prompt: str


@dataclass
class ChunkError:
    """Per-chunk failure record."""
    kind: str
    message: str
    user_message: str = ""

    @classmethod
    def from_exception(cls, error: ProviderError) -> 'ChunkError':
        return cls(kind=error.kind.value, message=error.message, user_message=error.user_message)

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "message": self.message, "user_message": self.user_message}


@dataclass
class RawAnalysisResponse:
    """Provider output for one chunk, or the error that replaced it."""
    chunk_index: int
    text: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None
    error: Optional[ChunkError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def add_usage(total: Dict[str, Any], usage: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Add the numeric counters of one usage report into total, nested dicts included."""
    for key, value in (usage or {}).items():
        if isinstance(value, dict):
            nested = total.get(key)
            if not isinstance(nested, dict):
                nested = total[key] = {}
            add_usage(nested, value)
        elif isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
            current = total.get(key, 0)
            total[key] = (current if isinstance(current, (int, float)) else 0) + value
    return total


@dataclass
class NormalizedResult:
    """Structured data recovered from provider text, or a text fallback."""
    data: Any
    success: bool
    repaired: bool = False
    is_text: bool = False
    repairs_applied: List[str] = field(default_factory=list)

    @property
    def text(self) -> Optional[str]:
        if self.is_text and isinstance(self.data, dict):
            return self.data.get("_text")
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.data,
            "success": self.success,
            "repaired": self.repaired,
            "is_text": self.is_text,
            "repairs_applied": list(self.repairs_applied),
        }


@dataclass
class ChunkResult:
    """Reconciler input: one chunk's normalized output or its error."""
    chunk_index: int
    normalized: Optional[NormalizedResult] = None
    error: Optional[ChunkError] = None


class AnalysisStatus(Enum):
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class AnalysisTypeResult:
    """Outcome of one analysis type; the unit persisted per type."""
    type: str
    name: str
    result: Union[Dict[str, Any], List[Any], str, None]
    status: AnalysisStatus
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    error: Optional[str] = None
    chunk_count: int = 0
    failed_chunks: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status is AnalysisStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "result": self.result,
            "status": self.status.value,
            "timestamp": self.timestamp,
            "error": self.error,
            "chunk_count": self.chunk_count,
            "failed_chunks": self.failed_chunks,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnalysisTypeResult':
        return cls(
            type=data["type"],
            name=data.get("name", data["type"]),
            result=data.get("result"),
            status=AnalysisStatus(data.get("status", AnalysisStatus.FAILED.value)),
            timestamp=data.get("timestamp", ""),
            error=data.get("error"),
            chunk_count=data.get("chunk_count", 0),
            failed_chunks=data.get("failed_chunks", 0),
            metadata=data.get("metadata", {}),
        )


@dataclass
class RunState:
    """
    In-flight state of one multi-type run.

    Only the coordinator mutates it; it is persisted after every type
    transition so an interrupted run can resume.
    """
    document_id: str
    selected_types: List[str]
    completed: Dict[str, AnalysisTypeResult] = field(default_factory=dict)
    cancelled: bool = False
    updated: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def remaining(self) -> List[str]:
        """Selected types without a recorded result, in selection order."""
        return [t for t in self.selected_types if t not in self.completed]

    @property
    def fingerprint(self) -> str:
        return type_set_fingerprint(self.selected_types)

    def record(self, result: AnalysisTypeResult) -> None:
        self.completed[result.type] = result
        self.updated = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document_id": self.document_id,
            "selected_types": list(self.selected_types),
            "completed": {k: v.to_dict() for k, v in self.completed.items()},
            "cancelled": self.cancelled,
            "updated": self.updated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RunState':
        return cls(
            document_id=data["document_id"],
            selected_types=list(data.get("selected_types", [])),
            completed={
                k: AnalysisTypeResult.from_dict(v)
                for k, v in data.get("completed", {}).items()
            },
            cancelled=data.get("cancelled", False),
            updated=data.get("updated", ""),
        )


def _count_entities(result: Any, list_key: str, summary_key: str) -> int:
    if not isinstance(result, dict):
        return 0
    summary = result.get("summary")
    if isinstance(summary, dict) and isinstance(summary.get(summary_key), (int, float)):
        if math.isfinite(summary[summary_key]):
            return int(summary[summary_key])
    items = result.get(list_key)
    return len(items) if isinstance(items, list) else 0


@dataclass
class ReconciledDocumentAnalysis:
    """Final union of every analysis type result for a run."""
    document_id: str
    file_name: str
    selected_types: List[str]
    results: Dict[str, AnalysisTypeResult] = field(default_factory=dict)
    cancelled: bool = False
    pending: List[str] = field(default_factory=list)
    total_scenes: int = 0
    total_characters: int = 0
    succeeded_count: int = 0
    failed_count: int = 0
    created: str = field(default_factory=lambda: datetime.now().isoformat())
    from_cache: bool = False

    @classmethod
    def build(
        cls,
        document: Document,
        selected_types: List[str],
        results: Dict[str, AnalysisTypeResult],
        cancelled: bool = False
    ) -> 'ReconciledDocumentAnalysis':
        """Assemble the analysis in selection order and compute aggregates."""
        ordered = {t: results[t] for t in selected_types if t in results}
        succeeded = [r for r in ordered.values() if r.succeeded]
        return cls(
            document_id=document.document_id,
            file_name=document.name,
            selected_types=list(selected_types),
            results=ordered,
            cancelled=cancelled,
            pending=[t for t in selected_types if t not in ordered],
            total_scenes=max(
                (_count_entities(r.result, "scenes", "totalScenes") for r in succeeded), default=0
            ),
            total_characters=max(
                (_count_entities(r.result, "characters", "totalCharacters") for r in succeeded), default=0
            ),
            succeeded_count=len(succeeded),
            failed_count=len(ordered) - len(succeeded),
        )

    @property
    def is_complete(self) -> bool:
        return not self.cancelled and not self.pending

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document_id": self.document_id,
            "file_name": self.file_name,
            "selected_types": list(self.selected_types),
            "results": {k: v.to_dict() for k, v in self.results.items()},
            "cancelled": self.cancelled,
            "pending": list(self.pending),
            "total_scenes": self.total_scenes,
            "total_characters": self.total_characters,
            "succeeded_count": self.succeeded_count,
            "failed_count": self.failed_count,
            "created": self.created,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ReconciledDocumentAnalysis':
        return cls(
            document_id=data["document_id"],
            file_name=data.get("file_name", ""),
            selected_types=list(data.get("selected_types", [])),
            results={
                k: AnalysisTypeResult.from_dict(v)
                for k, v in data.get("results", {}).items()
            },
            cancelled=data.get("cancelled", False),
            pending=list(data.get("pending", [])),
            total_scenes=data.get("total_scenes", 0),
            total_characters=data.get("total_characters", 0),
            succeeded_count=data.get("succeeded_count", 0),
            failed_count=data.get("failed_count", 0),
            created=data.get("created", ""),
        )
