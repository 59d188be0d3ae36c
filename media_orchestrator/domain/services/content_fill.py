"""Content-aware fill - distance-weighted inpainting without a provider."""

from __future__ import annotations

import logging
import math
import time

import cv2
import numpy as np
import numpy.typing as npt

from ...config import ENGINE_DEFAULTS
from ...exceptions import InvalidSelectionError
from ..entities.pixel_buffer import PixelBuffer
from ..value_objects.geometry import BoundingBox, MaskPolygon
from .tiling import Cancellable, TileCallback, check_cancelled, iter_tiles

logger = logging.getLogger(__name__)

BoolMask = npt.NDArray[np.bool_]


def sample_weights(radius: int) -> list[tuple[int, int, float]]:
    """Offsets (dy, dx) in a square window and their weight 1 / (1 + distance)."""
    return [
        (dy, dx, 1.0 / (1.0 + math.sqrt(dy * dy + dx * dx)))
        for dy in range(-radius, radius + 1)
        for dx in range(-radius, radius + 1)
    ]


def resolve_mask(mask: MaskPolygon | BoolMask, width: int, height: int) -> BoolMask:
    """Turn a polygon or boolean array into a (height, width) bool mask."""
    if isinstance(mask, MaskPolygon):
        return mask.rasterize(width, height)
    arr = np.asarray(mask, dtype=bool)
    if arr.shape != (height, width):
        raise InvalidSelectionError(
            f"Mask shape {arr.shape} does not match buffer {width}x{height}", field="mask"
        )
    return arr


def _nearest_known_colors(data: npt.NDArray[np.uint8], known: BoolMask) -> npt.NDArray[np.uint8]:
    """Colour of the nearest known pixel for every pixel."""
    # Zero pixels are the ones distances are measured to
    src = np.where(known, 0, 1).astype(np.uint8)
    _, labels = cv2.distanceTransformWithLabels(
        src, cv2.DIST_L2, 5, labelType=cv2.DIST_LABEL_PIXEL
    )
    lut = np.zeros((int(labels.max()) + 1, 4), dtype=np.uint8)
    lut[labels[known]] = data[known]
    return lut[labels]


def fill_masked(
    pixels: PixelBuffer,
    mask: MaskPolygon | BoolMask,
    radius: int = ENGINE_DEFAULTS.fill_radius,
    tile_size: int = ENGINE_DEFAULTS.tile_size,
    token: Cancellable | None = None,
    on_tile: TileCallback | None = None,
    yield_seconds: float = 0.0,
) -> PixelBuffer:
    """Fill the masked pixels from their unmasked surroundings.
    
    Each masked pixel becomes the weighted average (per channel, RGBA,
    rounded half-up) of the unmasked pixels within ``radius``, each weighted
    by ``1 / (1 + distance)``. A masked pixel with no unmasked pixel in range
    takes the colour of the nearest unmasked pixel.
    
    The input buffer is never modified; the result is a new buffer. Samples
    are read from a zero-padded window so no read falls outside the buffer.
    Only tiles touching the mask are processed; cancellation is checked before
    each tile.
    
    Args:
        pixels: Source buffer
        mask: Polygon or (H, W) bool array of pixels to replace
        radius: Sampling radius in pixels
        tile_size: Tile edge length
        token: Optional cancellation token
        on_tile: Optional progress callback(tiles_done, tiles_total)
        yield_seconds: Pause between tiles
        
    Returns:
        New buffer with the mask filled
        
    Raises:
        InvalidSelectionError: If the buffer is empty or the mask covers nothing
        OperationCancelledError: If the token is signalled
    """
    if pixels.is_empty:
        raise InvalidSelectionError("Cannot fill an empty buffer", field="pixels")
    width, height = pixels.size
    masked = resolve_mask(mask, width, height)
    if not masked.any():
        raise InvalidSelectionError("Mask does not cover any pixel of the buffer", field="mask")
    
    out = pixels.data.copy()
    known = ~masked
    if not known.any():
        logger.warning("Mask covers the whole buffer, nothing to sample from")
        return PixelBuffer(out)
    
    # Work inside the mask's bounding box grown by the radius; everything a
    # masked pixel can sample lives there.
    bbox = BoundingBox.from_mask(masked)
    wx0, wy0 = max(bbox.x - radius, 0), max(bbox.y - radius, 0)
    wx1, wy1 = min(bbox.max_x + radius, width), min(bbox.max_y + radius, height)
    window = pixels.data[wy0:wy1, wx0:wx1]
    window_known = known[wy0:wy1, wx0:wx1]
    
    values = np.pad(
        window.astype(np.float64) * window_known[..., None],
        ((radius, radius), (radius, radius), (0, 0)),
    )
    weights_known = np.pad(window_known.astype(np.float64), radius)
    offsets = sample_weights(radius)
    nearest: npt.NDArray[np.uint8] | None = None
    
    tiles = list(iter_tiles(width, height, tile_size, bbox))
    for i, tile in enumerate(tiles, 1):
        check_cancelled(token)
        
        # Part of the tile inside the sampling window
        ty0, ty1 = max(tile.y, wy0), min(tile.y1, wy1)
        tx0, tx1 = max(tile.x, wx0), min(tile.x1, wx1)
        tile_mask = masked[ty0:ty1, tx0:tx1]
        if tile_mask.any():
            th, tw = ty1 - ty0, tx1 - tx0
            py, px = ty0 - wy0 + radius, tx0 - wx0 + radius
            num = np.zeros((th, tw, 4), dtype=np.float64)
            den = np.zeros((th, tw), dtype=np.float64)
            for dy, dx, weight in offsets:
                ys = slice(py + dy, py + dy + th)
                xs = slice(px + dx, px + dx + tw)
                num += weight * values[ys, xs]
                den += weight * weights_known[ys, xs]
            
            out_tile = out[ty0:ty1, tx0:tx1]
            sampled = tile_mask & (den > 0)
            avg = np.floor(num[sampled] / den[sampled][:, None] + 0.5)
            out_tile[sampled] = np.clip(avg, 0, 255).astype(np.uint8)
            
            orphans = tile_mask & (den == 0)
            if orphans.any():
                if nearest is None:
                    nearest = _nearest_known_colors(pixels.data, known)
                out_tile[orphans] = nearest[ty0:ty1, tx0:tx1][orphans]
        
        if on_tile is not None:
            on_tile(i, len(tiles))
        if yield_seconds:
            time.sleep(yield_seconds)
    
    logger.debug(f"Filled {int(masked.sum())} pixels over {len(tiles)} tiles (radius {radius})")
    return PixelBuffer(out)
