"""
ScriptScope Utilities Module

Text chunking and file helpers used throughout the package.
"""

from .file_utils import (
    read_json,
    write_json,
    read_script,
    ensure_directory,
    safe_filename,
    list_files,
)
from .chunk_manager import (
    Chunk,
    ChunkPolicy,
    ChunkStrategy,
    ChunkUnit,
    TextChunker,
    estimate_tokens,
    plan_chunk_policy,
)

__all__ = [
    'read_json',
    'write_json',
    'read_script',
    'ensure_directory',
    'safe_filename',
    'list_files',
    'Chunk',
    'ChunkPolicy',
    'ChunkStrategy',
    'ChunkUnit',
    'TextChunker',
    'estimate_tokens',
    'plan_chunk_policy',
]
