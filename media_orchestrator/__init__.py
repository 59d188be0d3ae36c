"""Media Processing Orchestrator - remote providers first, local pixel algorithms as fallback."""

__version__ = "1.0.0"

from .application.ports.event_publisher import ProgressEvent, ProgressStage
from .application.services.orchestrator import OperationState, ProcessingOrchestrator
from .application.services.task_registry import OperationHandle
from .config import OperationKind
from .domain.entities.detection import DetectedObject
from .domain.entities.pixel_buffer import PixelBuffer
from .domain.entities.result import ErrorKind, OperationResult
from .domain.value_objects.config import OrchestratorConfig, ProviderCatalog, ProviderDescriptor
from .domain.value_objects.geometry import BoundingBox, MaskPolygon, Point
from .exceptions import (
    ConfigurationError,
    FallbackFailedError,
    InvalidSelectionError,
    MediaOrchestratorError,
    OperationCancelledError,
    ProviderError,
    ProviderResponseMalformedError,
    ProviderTransportError,
    ResourceExhaustedError,
)
from .utils.env import setup_logging

__all__ = [
    '__version__',
    'ProcessingOrchestrator',
    'OperationKind',
    'OperationState',
    'OperationHandle',
    'OperationResult',
    'ErrorKind',
    'ProgressEvent',
    'ProgressStage',
    'PixelBuffer',
    'DetectedObject',
    'Point',
    'BoundingBox',
    'MaskPolygon',
    'OrchestratorConfig',
    'ProviderCatalog',
    'ProviderDescriptor',
    'setup_logging',
    # Exceptions
    'MediaOrchestratorError',
    'ConfigurationError',
    'InvalidSelectionError',
    'ProviderError',
    'ProviderTransportError',
    'ProviderResponseMalformedError',
    'ResourceExhaustedError',
    'OperationCancelledError',
    'FallbackFailedError',
]
