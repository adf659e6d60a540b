"""
ScriptScope Analysis

Data model, analysis-type catalog, output normalizer and result reconciler.
"""

from .models import (
    Document,
    AnalysisRequest,
    ChunkError,
    RawAnalysisResponse,
    NormalizedResult,
    ChunkResult,
    AnalysisStatus,
    AnalysisTypeResult,
    RunState,
    ReconciledDocumentAnalysis,
    type_set_fingerprint,
)
from .catalog import (
    OutputFormat,
    AnalysisTypeSpec,
    AnalysisCatalog,
    default_catalog,
    build_combine_request,
    render_template,
)
from .normalizer import OutputNormalizer, RepairStep, normalize
from .reconciler import ResultReconciler, merge_entity, entity_key, join_texts, synthesize_text

__all__ = [
    'Document', 'AnalysisRequest', 'ChunkError', 'RawAnalysisResponse',
    'NormalizedResult', 'ChunkResult', 'AnalysisStatus', 'AnalysisTypeResult',
    'RunState', 'ReconciledDocumentAnalysis', 'type_set_fingerprint',
    'OutputFormat', 'AnalysisTypeSpec', 'AnalysisCatalog', 'default_catalog',
    'build_combine_request', 'render_template',
    'OutputNormalizer', 'RepairStep', 'normalize',
    'ResultReconciler', 'merge_entity', 'entity_key', 'join_texts', 'synthesize_text',
]
