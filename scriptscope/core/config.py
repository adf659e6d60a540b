"""
ScriptScope Configuration Management

Centralized configuration system with JSON loading and validation.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import ConfigurationError, InvalidConfigError
from .constants import (
    ProviderKind,
    DEFAULT_API_KEY_ENV,
    DEFAULT_ENDPOINTS,
    DEFAULT_MODELS,
    DEFAULT_TEMPERATURE,
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_OUTPUT_LANGUAGE,
    DEFAULT_MAX_CHUNK_SIZE,
    HIGH_CONTEXT_THRESHOLD,
    CONTEXT_FRACTION,
    DEFAULT_INTER_REQUEST_DELAY,
    DEFAULT_FULL_ANALYSIS_THRESHOLD,
    DEFAULT_STORAGE_DIR,
)

DEFAULT_CONFIG_PATH = Path("config/scriptscope_config.json")


@dataclass
class ProviderConfig:
    """Configuration for the reasoning provider."""
    kind: ProviderKind = ProviderKind.OPENAI
    model: str = ""
    endpoint: str = ""
    api_key_env: Optional[str] = None
    temperature: float = DEFAULT_TEMPERATURE
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    timeout: int = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self):
        if not self.model:
            self.model = DEFAULT_MODELS[self.kind]
        if not self.endpoint:
            self.endpoint = DEFAULT_ENDPOINTS[self.kind]
        if self.api_key_env is None:
            self.api_key_env = DEFAULT_API_KEY_ENV[self.kind]

    @classmethod
    def from_dict(cls, data: dict) -> 'ProviderConfig':
        """Create ProviderConfig from dictionary."""
        try:
            kind = ProviderKind(data.get('kind', ProviderKind.OPENAI.value))
        except ValueError:
            raise InvalidConfigError(f"Unknown provider kind: {data.get('kind')}")
        return cls(
            kind=kind,
            model=data.get('model', ''),
            endpoint=data.get('endpoint', ''),
            api_key_env=data.get('api_key_env'),
            temperature=data.get('temperature', DEFAULT_TEMPERATURE),
            max_output_tokens=data.get('max_output_tokens', DEFAULT_MAX_OUTPUT_TOKENS),
            timeout=data.get('timeout', DEFAULT_TIMEOUT_SECONDS)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind.value,
            'model': self.model,
            'endpoint': self.endpoint,
            'api_key_env': self.api_key_env,
            'temperature': self.temperature,
            'max_output_tokens': self.max_output_tokens,
            'timeout': self.timeout,
        }


@dataclass
class ChunkingConfig:
    """Document chunking settings."""
    max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
    unit: str = "chars"
    strategy: str = "paragraph"
    high_context_threshold: int = HIGH_CONTEXT_THRESHOLD
    context_fraction: float = CONTEXT_FRACTION


@dataclass
class PacingConfig:
    """Inter-request pacing for rate-limited providers."""
    inter_request_delay: float = DEFAULT_INTER_REQUEST_DELAY
    skip_delay_for_local: bool = True


@dataclass
class CacheConfig:
    """Result caching and checkpoint settings."""
    enabled: bool = True
    full_analysis_threshold: int = DEFAULT_FULL_ANALYSIS_THRESHOLD
    storage_dir: Path = field(default_factory=lambda: Path(DEFAULT_STORAGE_DIR))


@dataclass
class ScriptScopeConfig:
    """Main configuration class for ScriptScope."""

    provider: ProviderConfig = field(default_factory=ProviderConfig)
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    pacing: PacingConfig = field(default_factory=PacingConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)

    output_language: str = DEFAULT_OUTPUT_LANGUAGE
    verbose_logging: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> 'ScriptScopeConfig':
        """Create ScriptScopeConfig from dictionary."""
        config = cls()

        config.output_language = data.get('output_language', config.output_language)
        config.verbose_logging = data.get('verbose_logging', config.verbose_logging)

        if 'provider' in data:
            config.provider = ProviderConfig.from_dict(data['provider'])

        if 'chunking' in data:
            chunk_data = data['chunking']
            config.chunking = ChunkingConfig(
                max_chunk_size=chunk_data.get('max_chunk_size', DEFAULT_MAX_CHUNK_SIZE),
                unit=chunk_data.get('unit', 'chars'),
                strategy=chunk_data.get('strategy', 'paragraph'),
                high_context_threshold=chunk_data.get('high_context_threshold', HIGH_CONTEXT_THRESHOLD),
                context_fraction=chunk_data.get('context_fraction', CONTEXT_FRACTION)
            )
            if config.chunking.max_chunk_size <= 0:
                raise InvalidConfigError("chunking.max_chunk_size must be positive")

        if 'pacing' in data:
            pacing_data = data['pacing']
            config.pacing = PacingConfig(
                inter_request_delay=pacing_data.get('inter_request_delay', DEFAULT_INTER_REQUEST_DELAY),
                skip_delay_for_local=pacing_data.get('skip_delay_for_local', True)
            )

        if 'cache' in data:
            cache_data = data['cache']
            config.cache = CacheConfig(
                enabled=cache_data.get('enabled', True),
                full_analysis_threshold=cache_data.get(
                    'full_analysis_threshold', DEFAULT_FULL_ANALYSIS_THRESHOLD
                ),
                storage_dir=Path(cache_data.get('storage_dir', DEFAULT_STORAGE_DIR))
            )

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            'output_language': self.output_language,
            'verbose_logging': self.verbose_logging,
            'provider': self.provider.to_dict(),
            'chunking': {
                'max_chunk_size': self.chunking.max_chunk_size,
                'unit': self.chunking.unit,
                'strategy': self.chunking.strategy,
                'high_context_threshold': self.chunking.high_context_threshold,
                'context_fraction': self.chunking.context_fraction,
            },
            'pacing': {
                'inter_request_delay': self.pacing.inter_request_delay,
                'skip_delay_for_local': self.pacing.skip_delay_for_local,
            },
            'cache': {
                'enabled': self.cache.enabled,
                'full_analysis_threshold': self.cache.full_analysis_threshold,
                'storage_dir': str(self.cache.storage_dir),
            },
        }


def load_config(config_path: Path = None) -> ScriptScopeConfig:
    """
    Load configuration from JSON file.

    Args:
        config_path: Path to configuration file. If None, uses default.

    Returns:
        Loaded ScriptScopeConfig instance
    """
    config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        # Return default config if file doesn't exist
        return ScriptScopeConfig()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidConfigError(f"Invalid JSON in config file: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to load config: {e}")

    return ScriptScopeConfig.from_dict(data)


def save_config(config: ScriptScopeConfig, config_path: Path = None) -> Path:
    """Write configuration to a JSON file and return its path."""
    config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config.to_dict(), indent=2), encoding='utf-8')
    return config_path


# Global config instance
_config: Optional[ScriptScopeConfig] = None


def get_config() -> ScriptScopeConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: ScriptScopeConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
