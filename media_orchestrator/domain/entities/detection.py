"""Detected object entity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..value_objects.geometry import BoundingBox


@dataclass(frozen=True, slots=True)
class DetectedObject:
    """A labelled region found by a detection call. Immutable once returned."""
    id: str
    label: str
    confidence: float
    bbox: BoundingBox
    color: str
    mask: Any = None  # Per-pixel bool array or provider mask payload
    
    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")
    
    @property
    def has_mask(self) -> bool:
        return self.mask is not None
    
    def to_dict(self, include_mask: bool = False) -> dict[str, Any]:
        """JSON-ready form (sent as ``object_data`` to inpainting providers)."""
        data: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "confidence": self.confidence,
            "bbox": self.bbox.to_dict(),
            "color": self.color,
        }
        if include_mask and self.mask is not None:
            mask = self.mask
            data["mask"] = mask.tolist() if hasattr(mask, "tolist") else mask
        return data
    
    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DetectedObject:
        bbox = data["bbox"]
        return cls(
            id=str(data["id"]),
            label=str(data["label"]),
            confidence=float(data["confidence"]),
            bbox=BoundingBox(int(bbox["x"]), int(bbox["y"]), int(bbox["width"]), int(bbox["height"])),
            color=str(data.get("color", "#FF6B6B")),
            mask=data.get("mask"),
        )
