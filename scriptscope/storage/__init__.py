"""
ScriptScope Storage

Key-value persistence and the analysis checkpoint manager.
"""

from .kv_store import KeyValueStore, InMemoryStore, JsonFileStore
from .checkpoint_manager import AnalysisCheckpointManager

__all__ = ['KeyValueStore', 'InMemoryStore', 'JsonFileStore', 'AnalysisCheckpointManager']
