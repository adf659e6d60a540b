"""
ScriptScope Custom Exceptions

Exception classes for error handling throughout the analysis orchestrator.
Cancellation is not represented here: it is a normal terminal state signalled
through a CancellationToken.
"""

from enum import Enum
from typing import Optional


class ScriptScopeError(Exception):
    """Base exception for all ScriptScope errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(ScriptScopeError):
    """Raised when there's an issue with configuration."""
    pass


class MissingConfigError(ConfigurationError):
    """Raised when a required configuration is missing."""
    pass


class InvalidConfigError(ConfigurationError):
    """Raised when a configuration value is invalid."""
    pass


# =============================================================================
# ANALYSIS ERRORS
# =============================================================================

class AnalysisError(ScriptScopeError):
    """Base exception for analysis orchestration errors."""
    pass


class UnknownAnalysisTypeError(AnalysisError):
    """Raised when a requested analysis type is not in the catalog."""

    def __init__(self, type_id: str):
        message = f"Unknown analysis type: '{type_id}'"
        super().__init__(message, {"type_id": type_id})
        self.type_id = type_id


class ChunkingError(AnalysisError):
    """Raised when a chunk policy is invalid."""
    pass


# =============================================================================
# PROVIDER ERRORS
# =============================================================================

class ProviderErrorKind(Enum):
    """HTTP-like status class of a reasoning provider failure."""
    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"
    SERVER_ERROR = "server_error"
    NETWORK = "network"
    TIMEOUT = "timeout"
    INVALID_REQUEST = "invalid_request"


USER_MESSAGES = {
    ProviderErrorKind.RATE_LIMITED: "The AI provider is rate limiting requests. Wait a moment and run the analysis again.",
    ProviderErrorKind.UNAUTHORIZED: "The AI provider rejected the credentials. Check the API key in your settings.",
    ProviderErrorKind.SERVER_ERROR: "The AI provider returned a server error. Try again later.",
    ProviderErrorKind.NETWORK: "Could not reach the AI provider. Check your connection or the local server.",
    ProviderErrorKind.TIMEOUT: "The AI provider did not answer in time. Try a smaller document or a faster model.",
    ProviderErrorKind.INVALID_REQUEST: "The AI provider rejected the request. Check the selected model and limits.",
}


class ProviderError(ScriptScopeError):
    """Raised by a reasoning provider when a generation request fails."""

    def __init__(
        self,
        kind: ProviderErrorKind,
        message: str,
        provider: str = "",
        status_code: Optional[int] = None
    ):
        details = {"kind": kind.value}
        if provider:
            details["provider"] = provider
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.kind = kind
        self.provider = provider
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        """Whether re-invoking the run may succeed."""
        return self.kind is not ProviderErrorKind.UNAUTHORIZED

    @property
    def user_message(self) -> str:
        return USER_MESSAGES[self.kind]


# =============================================================================
# PERSISTENCE ERRORS
# =============================================================================

class PersistenceError(ScriptScopeError):
    """Raised when the key-value store cannot read or write an entry."""
    pass
