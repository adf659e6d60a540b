"""
ScriptScope Core Module

Contains core systems including configuration, constants, exceptions, and logging.
"""

from .config import (
    ScriptScopeConfig,
    ProviderConfig,
    ChunkingConfig,
    PacingConfig,
    CacheConfig,
    load_config,
    save_config,
    get_config,
    set_config,
)
from .constants import ProviderKind, LOCAL_PROVIDERS
from .exceptions import *
from .logging_config import setup_logging, get_logger, LogLevel

__all__ = [
    'ScriptScopeConfig',
    'ProviderConfig',
    'ChunkingConfig',
    'PacingConfig',
    'CacheConfig',
    'load_config',
    'save_config',
    'get_config',
    'set_config',
    'ProviderKind',
    'LOCAL_PROVIDERS',
    'setup_logging',
    'get_logger',
    'LogLevel',
]
