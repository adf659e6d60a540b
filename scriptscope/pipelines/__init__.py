"""
ScriptScope Pipelines

Progress events, cancellation, the chunk invoker and the run coordinator.
"""

from .cancellation import CancellationToken
from .events import ProgressEvent, ProgressChannel
from .chunk_invoker import ChunkProgress, InvocationOutcome, ChunkAnalysisInvoker
from .analysis_run import RunPhase, AnalysisRunCoordinator

__all__ = [
    'CancellationToken',
    'ProgressEvent',
    'ProgressChannel',
    'ChunkProgress',
    'InvocationOutcome',
    'ChunkAnalysisInvoker',
    'RunPhase',
    'AnalysisRunCoordinator',
]
