"""
ScriptScope - Multi-pass AI analysis for screenplays

Splits long scripts into bounded chunks, runs them through independently
prompted analysis passes against a reasoning provider, reconciles the
per-chunk results and checkpoints progress so interrupted runs resume.

Version: 1.0.0
"""

__version__ = "1.0.0"
__project__ = "ScriptScope"

from pathlib import Path

# Load environment variables before anything reads API keys
from scriptscope.core.env_loader import ensure_env_loaded
ensure_env_loaded()

PACKAGE_ROOT = Path(__file__).parent

from .analysis import Document, ReconciledDocumentAnalysis, AnalysisTypeResult, default_catalog, normalize
from .llm import ReasoningProvider, GenerationOptions, create_provider
from .pipelines import AnalysisRunCoordinator, ProgressChannel, ProgressEvent, CancellationToken
from .storage import InMemoryStore, JsonFileStore

__all__ = [
    "__version__",
    "PACKAGE_ROOT",
    "Document",
    "ReconciledDocumentAnalysis",
    "AnalysisTypeResult",
    "default_catalog",
    "normalize",
    "ReasoningProvider",
    "GenerationOptions",
    "create_provider",
    "AnalysisRunCoordinator",
    "ProgressChannel",
    "ProgressEvent",
    "CancellationToken",
    "InMemoryStore",
    "JsonFileStore",
]
