"""Region growing - flood-fill object detection without a provider."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from ...config import DETECTION_COLORS, ENGINE_DEFAULTS
from ...exceptions import InvalidSelectionError
from ..entities.detection import DetectedObject
from ..entities.pixel_buffer import PixelBuffer
from ..value_objects.geometry import BoundingBox, Point
from .tiling import Cancellable, TileCallback, check_cancelled, count_tiles, tile_containing

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GrownRegion:
    """Pixels reached by a flood fill."""
    mask: npt.NDArray[np.bool_]
    seed: Point
    
    @property
    def size(self) -> int:
        return int(np.count_nonzero(self.mask))
    
    @property
    def bounding_box(self) -> BoundingBox:
        return BoundingBox.from_mask(self.mask)
    
    def points(self) -> set[Point]:
        ys, xs = np.nonzero(self.mask)
        return {Point(int(x), int(y)) for x, y in zip(xs, ys)}


def grow_region(
    pixels: PixelBuffer,
    seed: Point,
    threshold: int = ENGINE_DEFAULTS.similarity_threshold,
    cap: int = ENGINE_DEFAULTS.region_cap,
    tile_size: int = ENGINE_DEFAULTS.tile_size,
    token: Cancellable | None = None,
    on_tile: TileCallback | None = None,
    yield_seconds: float = 0.0,
) -> GrownRegion:
    """Grow a 4-connected region from a seed pixel.
    
    A pixel joins when the sum of absolute R, G and B differences from the
    seed colour is at most ``threshold``. Growth stops at ``cap`` pixels.
    
    Growth runs one tile at a time: the fill is confined to the current tile
    and neighbours across a tile edge are queued for that tile. Cancellation
    is checked before each tile.
    
    Args:
        pixels: Buffer to analyse (not modified)
        seed: Start pixel
        threshold: Colour similarity threshold across R+G+B
        cap: Maximum region size in pixels
        tile_size: Tile edge length
        token: Optional cancellation token
        on_tile: Optional progress callback(tiles_done, tiles_total)
        yield_seconds: Pause between tiles
        
    Returns:
        The grown region
        
    Raises:
        InvalidSelectionError: If the buffer is empty or the seed is outside it
        OperationCancelledError: If the token is signalled
    """
    if pixels.is_empty:
        raise InvalidSelectionError("Cannot grow a region in an empty buffer", field="pixels")
    width, height = pixels.size
    if not seed.within(width, height):
        raise InvalidSelectionError(
            f"Seed {seed.x},{seed.y} is outside the {width}x{height} buffer", field="point"
        )
    
    rgb = pixels.data[..., :3].astype(np.int16)
    reference = rgb[seed.y, seed.x]
    similar = np.abs(rgb - reference).sum(axis=2) <= threshold
    region = np.zeros((height, width), dtype=bool)
    
    total_tiles = count_tiles(width, height, tile_size)
    pending: dict[tuple[int, int], list[tuple[int, int]]] = {}
    order: deque[tuple[int, int]] = deque()
    
    def enqueue(x: int, y: int) -> None:
        tile = tile_containing(x, y, width, height, tile_size)
        if tile.key not in pending:
            pending[tile.key] = []
            order.append(tile.key)
        pending[tile.key].append((x, y))
    
    enqueue(seed.x, seed.y)
    size = 0
    tiles_done = 0
    
    while order and size < cap:
        check_cancelled(token)
        key = order.popleft()
        stack = pending.pop(key)
        tile = tile_containing(key[0], key[1], width, height, tile_size)
        
        while stack and size < cap:
            x, y = stack.pop()
            if region[y, x]:
                continue
            region[y, x] = True
            size += 1
            
            for nx, ny in ((x + 1, y), (x - 1, y), (x, y + 1), (x, y - 1)):
                if not (0 <= nx < width and 0 <= ny < height):
                    continue
                if region[ny, nx] or not similar[ny, nx]:
                    continue
                if tile.x <= nx < tile.x1 and tile.y <= ny < tile.y1:
                    stack.append((nx, ny))
                else:
                    enqueue(nx, ny)
        
        tiles_done += 1
        if on_tile is not None:
            on_tile(min(tiles_done, total_tiles), total_tiles)
        if yield_seconds:
            time.sleep(yield_seconds)
    
    logger.debug(f"Grew region of {size} pixels from ({seed.x}, {seed.y}) over {tiles_done} tile visits")
    return GrownRegion(mask=region, seed=seed)


def region_to_detection(
    region: GrownRegion,
    min_pixels: int = ENGINE_DEFAULTS.min_region_pixels,
    confidence: float = ENGINE_DEFAULTS.fallback_confidence,
    label: str = ENGINE_DEFAULTS.fallback_label,
) -> list[DetectedObject]:
    """Turn a grown region into the synthetic fallback detection.
    
    Regions under ``min_pixels`` mean no detection and give an empty list.
    """
    if region.size < min_pixels:
        logger.info(f"Region of {region.size} pixels is below minimum {min_pixels}, no detection")
        return []
    
    return [DetectedObject(
        id="fallback_0",
        label=label,
        confidence=confidence,
        bbox=region.bounding_box,
        color=DETECTION_COLORS[0],
        mask=region.mask,
    )]
