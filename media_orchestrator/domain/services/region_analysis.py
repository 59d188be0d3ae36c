"""Region Analysis Engine - provider-free detection and removal."""

from __future__ import annotations

import logging

from ..value_objects.config import OrchestratorConfig
from ..entities.detection import DetectedObject
from ..entities.pixel_buffer import PixelBuffer
from ..value_objects.geometry import MaskPolygon, Point
from .content_fill import BoolMask, fill_masked
from .region_growing import GrownRegion, grow_region, region_to_detection
from .tiling import Cancellable, TileCallback

logger = logging.getLogger(__name__)


class RegionAnalysisEngine:
    """Local fallback algorithms, configured once and run tile by tile."""
    
    def __init__(self, config: OrchestratorConfig | None = None):
        self.config = config or OrchestratorConfig()
    
    def grow_region(
        self,
        pixels: PixelBuffer,
        seed: Point,
        token: Cancellable | None = None,
        on_tile: TileCallback | None = None,
    ) -> GrownRegion:
        """Flood fill from ``seed``; see :func:`grow_region`."""
        return grow_region(
            pixels,
            seed,
            threshold=self.config.similarity_threshold,
            cap=self.config.region_cap,
            tile_size=self.config.tile_size,
            token=token,
            on_tile=on_tile,
            yield_seconds=self.config.tile_yield_seconds,
        )
    
    def detect_region(
        self,
        pixels: PixelBuffer,
        seed: Point,
        token: Cancellable | None = None,
        on_tile: TileCallback | None = None,
    ) -> list[DetectedObject]:
        """Fallback object detection: one synthetic object or nothing."""
        region = self.grow_region(pixels, seed, token=token, on_tile=on_tile)
        return region_to_detection(
            region,
            min_pixels=self.config.min_region_pixels,
            confidence=self.config.fallback_confidence,
        )
    
    def fill_masked(
        self,
        pixels: PixelBuffer,
        mask: MaskPolygon | BoolMask,
        token: Cancellable | None = None,
        on_tile: TileCallback | None = None,
    ) -> PixelBuffer:
        """Fallback removal; see :func:`fill_masked`."""
        return fill_masked(
            pixels,
            mask,
            radius=self.config.fill_radius,
            tile_size=self.config.tile_size,
            token=token,
            on_tile=on_tile,
            yield_seconds=self.config.tile_yield_seconds,
        )
