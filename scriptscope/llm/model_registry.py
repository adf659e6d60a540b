"""
ScriptScope Model Registry

Known models per provider with their context windows. The context window
decides whether documents are sent whole or chunked.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from scriptscope.core.constants import (
    ProviderKind,
    LOCAL_PROVIDERS,
    DEFAULT_ENDPOINTS,
)


@dataclass(frozen=True)
class ModelInfo:
    """Information about a provider model."""
    id: str
    name: str
    context_window: Optional[int] = None  # tokens; None when unknown
    recommended: bool = False


MODEL_TABLES: Dict[ProviderKind, List[ModelInfo]] = {
    ProviderKind.OPENAI: [
        ModelInfo("gpt-4-turbo-preview", "GPT-4 Turbo", 128000),
        ModelInfo("gpt-4o", "GPT-4o", 128000, recommended=True),
        ModelInfo("gpt-4o-mini", "GPT-4o mini", 128000),
        ModelInfo("gpt-4", "GPT-4", 8192),
        ModelInfo("gpt-3.5-turbo", "GPT-3.5 Turbo", 16385),
    ],
    ProviderKind.GEMINI: [
        ModelInfo("gemini-1.5-pro-latest", "Gemini 1.5 Pro (Latest)", 2000000, recommended=True),
        ModelInfo("gemini-1.5-pro", "Gemini 1.5 Pro", 2000000),
        ModelInfo("gemini-1.5-flash-latest", "Gemini 1.5 Flash (Latest)", 1000000),
        ModelInfo("gemini-1.5-flash", "Gemini 1.5 Flash", 1000000),
        ModelInfo("gemini-2.5-flash", "Gemini 2.5 Flash", 1000000),
        ModelInfo("gemini-pro", "Gemini Pro (Legacy)", 32000),
    ],
    ProviderKind.MLX: [
        ModelInfo("mlx-community/Llama-3.2-3B-Instruct-4bit", "Llama 3.2 3B (4-bit)", 128000, recommended=True),
        ModelInfo("mlx-community/Llama-3.2-1B-Instruct-4bit", "Llama 3.2 1B (4-bit)", 128000),
        ModelInfo("mlx-community/Meta-Llama-3.1-8B-Instruct-4bit", "Llama 3.1 8B (4-bit)", 128000),
        ModelInfo("mlx-community/Mistral-7B-Instruct-v0.3-4bit", "Mistral 7B v0.3 (4-bit)", 32000),
        ModelInfo("mlx-community/gemma-2-2b-it-4bit", "Gemma 2 2B (4-bit)", 8000),
        ModelInfo("mlx-community/Qwen2.5-7B-Instruct-4bit", "Qwen 2.5 7B (4-bit)", 32000),
    ],
    ProviderKind.LOCAL: [
        ModelInfo("llama3", "Llama 3"),
        ModelInfo("mistral", "Mistral"),
        ModelInfo("gemma", "Gemma"),
        ModelInfo("phi3", "Phi-3"),
    ],
}


def list_models(kind: ProviderKind) -> List[ModelInfo]:
    """List the known models of a provider."""
    return list(MODEL_TABLES.get(kind, []))


def get_model_info(kind: ProviderKind, model: str) -> Optional[ModelInfo]:
    """Look up a model by id; None when it is not in the registry."""
    for info in MODEL_TABLES.get(kind, []):
        if info.id == model:
            return info
    return None


def context_window_for(kind: ProviderKind, model: str) -> Optional[int]:
    """Context window of a model in tokens, or None when unknown."""
    info = get_model_info(kind, model)
    return info.context_window if info else None


def is_local_provider(kind: ProviderKind) -> bool:
    return kind in LOCAL_PROVIDERS


def default_endpoint(kind: ProviderKind) -> str:
    return DEFAULT_ENDPOINTS[kind]
