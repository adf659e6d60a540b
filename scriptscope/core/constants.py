"""
ScriptScope Constants

Global constants used throughout the analysis orchestrator.
"""

from enum import Enum

# =============================================================================
# VERSION INFO
# =============================================================================
VERSION = "1.0.0"
PROJECT_NAME = "ScriptScope"

# =============================================================================
# PROVIDERS
# =============================================================================

class ProviderKind(Enum):
    """Supported reasoning provider families."""
    OPENAI = "openai"
    GEMINI = "gemini"
    LOCAL = "local"   # Ollama / LM Studio
    MLX = "mlx"       # Apple MLX server


# Self-hosted providers have no externally imposed rate limit
LOCAL_PROVIDERS = frozenset({ProviderKind.LOCAL, ProviderKind.MLX})

DEFAULT_ENDPOINTS = {
    ProviderKind.OPENAI: "https://api.openai.com/v1",
    ProviderKind.GEMINI: "https://generativelanguage.googleapis.com/v1beta/openai",
    ProviderKind.LOCAL: "http://localhost:11434/v1",
    ProviderKind.MLX: "http://localhost:8080/v1",
}

DEFAULT_API_KEY_ENV = {
    ProviderKind.OPENAI: "OPENAI_API_KEY",
    ProviderKind.GEMINI: "GOOGLE_API_KEY",
    ProviderKind.LOCAL: "",
    ProviderKind.MLX: "",
}

DEFAULT_MODELS = {
    ProviderKind.OPENAI: "gpt-4-turbo-preview",
    ProviderKind.GEMINI: "gemini-1.5-pro-latest",
    ProviderKind.LOCAL: "llama3",
    ProviderKind.MLX: "mlx-community/Llama-3.2-3B-Instruct-4bit",
}

# =============================================================================
# GENERATION DEFAULTS
# =============================================================================

DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_OUTPUT_TOKENS = 4000
DEFAULT_TIMEOUT_SECONDS = 300
DEFAULT_OUTPUT_LANGUAGE = "English"

# =============================================================================
# CHUNKING
# =============================================================================

# Rough characters-per-token ratio used for token estimates
CHARS_PER_TOKEN = 4

DEFAULT_MAX_CHUNK_SIZE = 12000
# Remote models at or above this context (tokens) receive whole documents
HIGH_CONTEXT_THRESHOLD = 100000
# Share of a model's context a single chunk may occupy
CONTEXT_FRACTION = 0.5

CHUNK_SEPARATOR = "\n\n"

# Scene heading pattern (INT./EXT./INT/EXT./I/E.)
SCENE_HEADING_PATTERN = r'^[ \t]*(?:INT\./EXT\.|INT/EXT\.|I/E\.|INT\.|EXT\.)\s+\S.*$'

# =============================================================================
# PACING & CACHING
# =============================================================================

DEFAULT_INTER_REQUEST_DELAY = 2.0
# Minimum number of selected types before the full-run cache is consulted
DEFAULT_FULL_ANALYSIS_THRESHOLD = 1
DEFAULT_STORAGE_DIR = ".scriptscope/analysis"

# Separator placed between per-chunk texts before synthesis
TEXT_PART_SEPARATOR = "\n\n---\n\n"
