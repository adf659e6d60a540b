"""
ScriptScope HTTP Provider

Reasoning provider for OpenAI-style chat completion endpoints. Covers OpenAI,
Gemini's OpenAI-compatible endpoint and self-hosted servers (Ollama,
LM Studio, MLX) that expose /chat/completions.

Requests are never retried here; a failed call surfaces as a ProviderError
and the caller decides whether to run again.
"""

from typing import Any, Dict, Optional

import httpx

from scriptscope.core.config import ProviderConfig
from scriptscope.core.env_loader import get_api_key
from scriptscope.core.exceptions import MissingConfigError, ProviderError, ProviderErrorKind
from scriptscope.core.logging_config import get_logger
from scriptscope.llm.model_registry import is_local_provider
from scriptscope.llm.provider import GenerationOptions, ReasoningProvider

logger = get_logger("llm.http_provider")


def classify_status(status_code: int) -> ProviderErrorKind:
    """Map an HTTP status code to a provider error kind."""
    if status_code == 429:
        return ProviderErrorKind.RATE_LIMITED
    if status_code in (401, 403):
        return ProviderErrorKind.UNAUTHORIZED
    if status_code == 408:
        return ProviderErrorKind.TIMEOUT
    if status_code >= 500:
        return ProviderErrorKind.SERVER_ERROR
    return ProviderErrorKind.INVALID_REQUEST


class OpenAICompatibleProvider(ReasoningProvider):
    """Chat-completions provider over httpx."""

    def __init__(
        self,
        config: ProviderConfig,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.config = config
        self.name = config.kind.value
        self.is_local = is_local_provider(config.kind)
        self.last_usage = None

        if api_key is None and config.api_key_env:
            api_key = get_api_key(config.api_key_env)
        if not api_key and not self.is_local:
            raise MissingConfigError(
                f"API key not found for provider '{self.name}'",
                {"api_key_env": config.api_key_env}
            )
        self._api_key = api_key

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.timeout)

    @property
    def url(self) -> str:
        return self.config.endpoint.rstrip("/") + "/chat/completions"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _payload(
        self,
        system_instruction: str,
        user_instruction: str,
        options: GenerationOptions
    ) -> Dict[str, Any]:
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": user_instruction})
        return {
            "model": self.config.model,
            "messages": messages,
            "temperature": options.temperature,
            "max_tokens": options.max_output_tokens,
        }

    async def generate(
        self,
        system_instruction: str,
        user_instruction: str,
        options: GenerationOptions
    ) -> str:
        payload = self._payload(system_instruction, user_instruction, options)
        self.last_usage = None

        try:
            response = await self._client.post(
                self.url,
                headers=self._headers(),
                json=payload,
                timeout=self.config.timeout
            )
        except httpx.TimeoutException as e:
            raise ProviderError(ProviderErrorKind.TIMEOUT, f"Request timed out: {e}", self.name)
        except httpx.TransportError as e:
            raise ProviderError(ProviderErrorKind.NETWORK, f"Connection failed: {e}", self.name)
        except (httpx.RequestError, httpx.InvalidURL) as e:
            # Anything else httpx raises for the request, e.g. a bad gzip body
            raise ProviderError(ProviderErrorKind.NETWORK, f"Request failed: {e}", self.name)

        if response.status_code >= 400:
            kind = classify_status(response.status_code)
            logger.warning(f"{self.name} returned HTTP {response.status_code} ({kind.value})")
            raise ProviderError(
                kind,
                f"HTTP {response.status_code}: {response.text[:200]}",
                self.name,
                response.status_code
            )

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(
                ProviderErrorKind.SERVER_ERROR,
                f"Malformed response body: {e}",
                self.name,
                response.status_code
            )

        self.last_usage = data.get("usage")
        return content or ""

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def create_provider(config: ProviderConfig, api_key: Optional[str] = None) -> ReasoningProvider:
    """Create the provider described by a ProviderConfig."""
    return OpenAICompatibleProvider(config, api_key=api_key)
