"""
ScriptScope LLM Module

Reasoning provider boundary, model registry and the HTTP provider.
"""

from .provider import GenerationOptions, ReasoningProvider
from .model_registry import (
    ModelInfo,
    MODEL_TABLES,
    list_models,
    get_model_info,
    context_window_for,
    is_local_provider,
    default_endpoint,
)
from .http_provider import OpenAICompatibleProvider, classify_status, create_provider

__all__ = [
    'GenerationOptions',
    'ReasoningProvider',
    'ModelInfo',
    'MODEL_TABLES',
    'list_models',
    'get_model_info',
    'context_window_for',
    'is_local_provider',
    'default_endpoint',
    'OpenAICompatibleProvider',
    'classify_status',
    'create_provider',
]
