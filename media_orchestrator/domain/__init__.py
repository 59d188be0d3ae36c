"""Domain layer - pixel buffers, geometry and the local fallback algorithms."""

from .entities import DetectedObject, ErrorKind, OperationResult, PixelBuffer
from .services import GrownRegion, RegionAnalysisEngine, fill_masked, grow_region
from .value_objects import (
    BoundingBox,
    MaskPolygon,
    OrchestratorConfig,
    Point,
    ProviderCatalog,
    ProviderDescriptor,
)

__all__ = [
    # Entities
    'PixelBuffer',
    'DetectedObject',
    'OperationResult',
    'ErrorKind',
    # Services
    'RegionAnalysisEngine',
    'GrownRegion',
    'grow_region',
    'fill_masked',
    # Value Objects
    'Point',
    'BoundingBox',
    'MaskPolygon',
    'OrchestratorConfig',
    'ProviderDescriptor',
    'ProviderCatalog',
]
