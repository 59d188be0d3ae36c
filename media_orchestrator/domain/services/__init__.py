"""Domain services - local pixel algorithms."""

from .content_fill import fill_masked
from .region_analysis import RegionAnalysisEngine
from .region_growing import GrownRegion, grow_region, region_to_detection

__all__ = [
    'RegionAnalysisEngine',
    'GrownRegion',
    'grow_region',
    'region_to_detection',
    'fill_masked',
]
