"""Custom exceptions for the Media Processing Orchestrator."""

from typing import Optional


class MediaOrchestratorError(Exception):
    """Base exception for all application errors.
    
    Attributes:
        message: Human-readable error description
        error_code: Optional error code for programmatic handling
    """
    
    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
    
    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class ConfigurationError(MediaOrchestratorError):
    """Error in configuration or settings.
    
    Attributes:
        config_key: The configuration key that caused the error (if applicable)
    """
    
    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, error_code="CONFIG_ERROR")
        self.config_key = config_key


class InvalidSelectionError(MediaOrchestratorError):
    """The mask polygon, click point or buffer handed in is unusable.
    
    Never retried; surfaced to the caller immediately.
    
    Attributes:
        field: The input that failed validation (if applicable)
    """
    
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, error_code="INVALID_SELECTION")
        self.field = field


class ProviderError(MediaOrchestratorError):
    """Base class for failures of a single remote provider.
    
    Attributes:
        provider: Name of the provider that failed
    """
    
    def __init__(self, message: str, provider: Optional[str] = None, error_code: str = "PROVIDER_ERROR"):
        super().__init__(message, error_code=error_code)
        self.provider = provider


class ProviderTransportError(ProviderError):
    """Network failure, timeout or non-success HTTP status from a provider.
    
    Attributes:
        status_code: HTTP status code, None for transport-level failures
    """
    
    def __init__(self, message: str, provider: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, provider=provider, error_code="PROVIDER_TRANSPORT")
        self.status_code = status_code


class ProviderResponseMalformedError(ProviderError):
    """Provider answered but the payload could not be normalized."""
    
    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message, provider=provider, error_code="PROVIDER_MALFORMED")


class ResourceExhaustedError(MediaOrchestratorError):
    """Memory usage is above the hard limit.
    
    Attributes:
        usage_mb: Sampled memory usage when the check failed
        limit_mb: The configured hard limit
    """
    
    def __init__(self, message: str, usage_mb: Optional[float] = None, limit_mb: Optional[float] = None):
        super().__init__(message, error_code="RESOURCE_EXHAUSTED")
        self.usage_mb = usage_mb
        self.limit_mb = limit_mb


class OperationCancelledError(MediaOrchestratorError):
    """The operation's cancellation token was signalled.
    
    Attributes:
        operation_id: Id of the cancelled operation (if known)
    """
    
    def __init__(self, message: str = "Operation cancelled", operation_id: Optional[str] = None):
        super().__init__(message, error_code="CANCELLED")
        self.operation_id = operation_id


class FallbackFailedError(MediaOrchestratorError):
    """Local fallback could not run after every provider failed."""
    
    def __init__(self, message: str):
        super().__init__(message, error_code="FALLBACK_FAILED")
