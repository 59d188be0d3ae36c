"""Response normalizers - map provider payloads into the common model.

Detection providers answer in one of three JSON shapes:

- ``predictions`` (DETR): ``{"predictions": [{"label", "score", "box": {xmin, ymin, xmax, ymax}}]}``
- ``segments`` (SegFormer, Mask2Former): ``{"segments": [{"label", "score"?, "bbox"?, "mask"?}]}``
- ``masks`` (SAM): ``{"masks": [{"score"?, "bbox", "segmentation"?}]}``

Removal providers return a raw image.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import numpy as np

from ...application.ports.provider_client import ProviderResponse
from ...config import DETECTION_COLORS
from ...domain.entities.detection import DetectedObject
from ...domain.entities.pixel_buffer import PixelBuffer
from ...domain.value_objects.config import ProviderDescriptor
from ...domain.value_objects.geometry import BoundingBox
from ...exceptions import ProviderResponseMalformedError

logger = logging.getLogger(__name__)

# (response, descriptor, (width, height) of the input) -> objects or pixels
Normalizer = Callable[[ProviderResponse, ProviderDescriptor, tuple[int, int]], "list[DetectedObject] | PixelBuffer"]

DEFAULT_SEGMENT_SCORE = 0.8
DEFAULT_MASK_SCORE = 0.9


def parse_bbox(raw: Any) -> BoundingBox:
    """Accept ``{x, y, width, height}``, ``{xmin, ymin, xmax, ymax}`` or ``[x, y, w, h]``."""
    if isinstance(raw, dict):
        if {"xmin", "ymin", "xmax", "ymax"} <= raw.keys():
            return BoundingBox.from_corners(
                float(raw["xmin"]), float(raw["ymin"]), float(raw["xmax"]), float(raw["ymax"])
            )
        return BoundingBox(
            int(round(float(raw["x"]))),
            int(round(float(raw["y"]))),
            int(round(float(raw["width"]))),
            int(round(float(raw["height"]))),
        )
    if isinstance(raw, (list, tuple)) and len(raw) == 4:
        x, y, w, h = (int(round(float(v))) for v in raw)
        return BoundingBox(x, y, w, h)
    raise ValueError(f"Unrecognized bbox: {raw!r}")


def _bbox_from_mask(mask: Any) -> BoundingBox:
    arr = np.asarray(mask)
    if arr.ndim != 2 or not arr.any():
        raise ValueError("Mask is not a non-empty 2-D array")
    return BoundingBox.from_mask(arr != 0)


def _score(raw: Any, default: float | None = None) -> float:
    if raw is None:
        if default is None:
            raise ValueError("Missing score")
        return default
    score = float(raw)
    if not 0.0 <= score <= 1.0:
        raise ValueError(f"Score {score} outside [0, 1]")
    return score


def _prefix(descriptor: ProviderDescriptor) -> str:
    return descriptor.model_type or descriptor.name.lower().replace(" ", "_")


def _json_list(response: ProviderResponse, key: str, descriptor: ProviderDescriptor) -> list:
    try:
        payload = response.json()
    except (ValueError, UnicodeDecodeError) as e:
        raise ProviderResponseMalformedError(f"Response is not JSON: {e}", provider=descriptor.name) from e
    if not isinstance(payload, dict) or not isinstance(payload.get(key), list):
        raise ProviderResponseMalformedError(f"Response has no '{key}' list", provider=descriptor.name)
    return payload[key]


def _build_objects(
    items: list,
    descriptor: ProviderDescriptor,
    convert: Callable[[dict], tuple[str, float, BoundingBox, Any]],
) -> list[DetectedObject]:
    prefix = _prefix(descriptor)
    objects = []
    for index, item in enumerate(items):
        try:
            if not isinstance(item, dict):
                raise TypeError(f"entry is {type(item).__name__}, not an object")
            label, score, bbox, mask = convert(item)
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderResponseMalformedError(
                f"Entry {index} is malformed: {e}", provider=descriptor.name
            ) from e
        objects.append(DetectedObject(
            id=f"{prefix}_{index}",
            label=label,
            confidence=score,
            bbox=bbox,
            color=DETECTION_COLORS[index % len(DETECTION_COLORS)],
            mask=mask,
        ))
    return objects


def normalize_predictions(
    response: ProviderResponse,
    descriptor: ProviderDescriptor,
    size: tuple[int, int],
) -> list[DetectedObject]:
    """Flat prediction list with corner boxes."""
    def convert(pred: dict) -> tuple[str, float, BoundingBox, Any]:
        return str(pred["label"]), _score(pred["score"]), parse_bbox(pred["box"]), None
    
    return _build_objects(_json_list(response, "predictions", descriptor), descriptor, convert)


def normalize_segments(
    response: ProviderResponse,
    descriptor: ProviderDescriptor,
    size: tuple[int, int],
) -> list[DetectedObject]:
    """Segment list; a segment without bbox uses its mask's extent."""
    def convert(segment: dict) -> tuple[str, float, BoundingBox, Any]:
        mask = segment.get("mask")
        if segment.get("bbox") is not None:
            bbox = parse_bbox(segment["bbox"])
        elif mask is not None:
            bbox = _bbox_from_mask(mask)
        else:
            raise ValueError("segment has neither bbox nor mask")
        return str(segment["label"]), _score(segment.get("score"), DEFAULT_SEGMENT_SCORE), bbox, mask
    
    return _build_objects(_json_list(response, "segments", descriptor), descriptor, convert)


def normalize_masks(
    response: ProviderResponse,
    descriptor: ProviderDescriptor,
    size: tuple[int, int],
) -> list[DetectedObject]:
    """SAM mask list."""
    def convert(mask: dict) -> tuple[str, float, BoundingBox, Any]:
        return (
            "Detected Object",
            _score(mask.get("score"), DEFAULT_MASK_SCORE),
            parse_bbox(mask["bbox"]),
            mask.get("segmentation"),
        )
    
    return _build_objects(_json_list(response, "masks", descriptor), descriptor, convert)


def normalize_image(
    response: ProviderResponse,
    descriptor: ProviderDescriptor,
    size: tuple[int, int],
) -> PixelBuffer:
    """Raw processed image, resized back to the input size if needed."""
    if not response.content:
        raise ProviderResponseMalformedError("Empty image payload", provider=descriptor.name)
    try:
        pixels = PixelBuffer.decode(response.content, size=size)
    except ValueError as e:
        raise ProviderResponseMalformedError(str(e), provider=descriptor.name) from e
    logger.debug(f"{descriptor.name} returned a {pixels.width}x{pixels.height} image")
    return pixels
