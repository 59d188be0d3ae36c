"""Operation result entity."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .detection import DetectedObject
from .pixel_buffer import PixelBuffer


class ErrorKind(str, Enum):
    """Failures the orchestrator can report to the caller."""
    INVALID_SELECTION = "invalid_selection"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    ALL_PROVIDERS_AND_FALLBACK_FAILED = "all_providers_and_fallback_failed"
    CANCELLED = "cancelled"
    
    @property
    def user_message(self) -> str:
        """Text suitable for showing to the user."""
        return _USER_MESSAGES[self]


_USER_MESSAGES = {
    ErrorKind.INVALID_SELECTION: "The selection could not be used. Draw a region of at least 3 points or click inside the image.",
    ErrorKind.RESOURCE_EXHAUSTED: "Insufficient memory for processing. Please close other work and try again.",
    ErrorKind.ALL_PROVIDERS_AND_FALLBACK_FAILED: "Processing failed: no service could handle the image and local processing was not possible.",
    ErrorKind.CANCELLED: "Processing cancelled by user.",
}


@dataclass(frozen=True, slots=True)
class OperationResult:
    """Terminal outcome of one detect or remove operation."""
    success: bool
    operation_id: str = ""
    pixels: PixelBuffer | None = None
    objects: list[DetectedObject] = field(default_factory=list)
    error_kind: ErrorKind | None = None
    error_message: str | None = None
    message: str = ""
    source: str | None = None  # "provider:<name>" or "local"
    elapsed_seconds: float = 0.0
    
    @property
    def cancelled(self) -> bool:
        return self.error_kind == ErrorKind.CANCELLED
    
    @property
    def user_message(self) -> str:
        """Human-readable summary, distinct from the technical error kind."""
        if self.success:
            return self.message or "Processing complete!"
        if self.error_kind is not None:
            return self.error_kind.user_message
        return self.error_message or "Processing failed"
    
    @classmethod
    def removal(
        cls,
        operation_id: str,
        pixels: PixelBuffer,
        source: str,
        elapsed_seconds: float = 0.0,
        message: str = "",
    ) -> OperationResult:
        """Create a successful removal result."""
        return cls(
            success=True,
            operation_id=operation_id,
            pixels=pixels,
            source=source,
            elapsed_seconds=elapsed_seconds,
            message=message,
        )
    
    @classmethod
    def detection(
        cls,
        operation_id: str,
        objects: list[DetectedObject],
        source: str,
        elapsed_seconds: float = 0.0,
        message: str = "",
    ) -> OperationResult:
        """Create a successful detection result."""
        return cls(
            success=True,
            operation_id=operation_id,
            objects=list(objects),
            source=source,
            elapsed_seconds=elapsed_seconds,
            message=message,
        )
    
    @classmethod
    def failure(
        cls,
        operation_id: str,
        kind: ErrorKind,
        error: str,
        elapsed_seconds: float = 0.0,
    ) -> OperationResult:
        """Create a failure result."""
        return cls(
            success=False,
            operation_id=operation_id,
            error_kind=kind,
            error_message=error,
            elapsed_seconds=elapsed_seconds,
        )
