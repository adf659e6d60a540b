"""
ScriptScope Reasoning Provider Boundary

The orchestrator consumes a provider through this interface only: a system
instruction, a user instruction and generation parameters go in, text comes
out, and failures surface as ProviderError with a status class.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from scriptscope.core.constants import DEFAULT_MAX_OUTPUT_TOKENS, DEFAULT_TEMPERATURE


@dataclass
class GenerationOptions:
    """Generation parameters for a single request."""
    temperature: float = DEFAULT_TEMPERATURE
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS


class ReasoningProvider(ABC):
    """Abstract base class for reasoning providers."""

    name: str = "provider"
    is_local: bool = False

    # Usage metadata of the most recent successful call, when the provider reports it
    last_usage: Optional[Dict[str, Any]] = None

    @abstractmethod
    async def generate(
        self,
        system_instruction: str,
        user_instruction: str,
        options: GenerationOptions
    ) -> str:
        """
        Generate a response.

        Raises:
            ProviderError: on any request failure
        """
        pass

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
        return None
