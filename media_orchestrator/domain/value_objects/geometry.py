"""Geometry value objects."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Iterator, Sequence


@dataclass(frozen=True, slots=True)
class Point:
    """2D point in buffer pixel coordinates."""
    x: int
    y: int
    
    def within(self, width: int, height: int) -> bool:
        """Check if the point addresses a pixel of a width x height buffer."""
        return 0 <= self.x < width and 0 <= self.y < height
    
    def to_dict(self) -> dict[str, int]:
        return {"x": self.x, "y": self.y}
    
    @classmethod
    def parse(cls, text: str) -> Point:
        """Parse an ``"x,y"`` string."""
        x, y = text.split(",")
        return cls(int(float(x)), int(float(y)))


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned box as (x, y, width, height) in pixels."""
    x: int
    y: int
    width: int
    height: int
    
    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"BoundingBox extents must be non-negative, got {self.width}x{self.height}"
            )
    
    @property
    def max_x(self) -> int:
        return self.x + self.width
    
    @property
    def max_y(self) -> int:
        return self.y + self.height
    
    def intersects(self, other: BoundingBox) -> bool:
        """Check if this box overlaps another (touching edges do not count)."""
        return not (
            self.max_x <= other.x or
            other.max_x <= self.x or
            self.max_y <= other.y or
            other.max_y <= self.y
        )
    
    def to_dict(self) -> dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}
    
    @classmethod
    def from_corners(cls, min_x: float, min_y: float, max_x: float, max_y: float) -> BoundingBox:
        """Create from corner coordinates (xmin, ymin, xmax, ymax)."""
        x, y = int(round(min_x)), int(round(min_y))
        return cls(x, y, int(round(max_x)) - x, int(round(max_y)) - y)
    
    @classmethod
    def from_mask(cls, mask: object) -> BoundingBox:
        """Bounding box of the True pixels of a 2-D mask.
        
        Extents are inclusive: a mask covering columns 0..99 has width 100.
        An empty mask gives a zero box at the origin.
        """
        import numpy as np
        
        ys, xs = np.nonzero(np.asarray(mask))
        if len(xs) == 0:
            return cls(0, 0, 0, 0)
        min_x, max_x = int(xs.min()), int(xs.max())
        min_y, max_y = int(ys.min()), int(ys.max())
        return cls(min_x, min_y, max_x - min_x + 1, max_y - min_y + 1)


@dataclass(frozen=True, slots=True)
class MaskPolygon:
    """Closed polygon drawn by the user.
    
    Point order defines edge order; the last point connects back to the first.
    """
    points: tuple[Point, ...]
    
    def __post_init__(self) -> None:
        if len(self.points) < 3:
            raise ValueError(f"MaskPolygon needs at least 3 points, got {len(self.points)}")
    
    def __iter__(self) -> Iterator[Point]:
        return iter(self.points)
    
    def __len__(self) -> int:
        return len(self.points)
    
    def rasterize(self, width: int, height: int) -> object:
        """Rasterize to a boolean (height, width) mask.
        
        Boundary pixels are inside. Parts of the polygon that fall outside
        the buffer are clipped.
        """
        import cv2
        import numpy as np
        
        mask = np.zeros((height, width), dtype=np.uint8)
        pts = np.array([[p.x, p.y] for p in self.points], dtype=np.int32)
        cv2.fillPoly(mask, [pts], 1)
        return mask.astype(bool)
    
    def to_json(self) -> str:
        """Legacy wire form: ``[{"x": .., "y": ..}, ...]``."""
        return json.dumps([p.to_dict() for p in self.points])
    
    @classmethod
    def from_points(cls, points: Sequence[Point | tuple[int, int]]) -> MaskPolygon:
        return cls(tuple(p if isinstance(p, Point) else Point(*p) for p in points))
    
    @classmethod
    def parse(cls, text: str) -> MaskPolygon:
        """Parse ``"x,y x,y x,y"`` (space or semicolon separated)."""
        chunks = text.replace(";", " ").split()
        return cls(tuple(Point.parse(c) for c in chunks))
