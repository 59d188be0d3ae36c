"""Value objects - immutable data with validation."""

from .geometry import Point, BoundingBox, MaskPolygon
from .config import OrchestratorConfig, ProviderDescriptor, ProviderCatalog

__all__ = [
    'Point',
    'BoundingBox',
    'MaskPolygon',
    'OrchestratorConfig',
    'ProviderDescriptor',
    'ProviderCatalog',
]
