"""Unit tests for geometry value objects."""

import json

import numpy as np
import pytest
from media_orchestrator.domain.value_objects.geometry import (
    Point, BoundingBox, MaskPolygon
)


class TestPoint:
    """Tests for Point class."""
    
    def test_creation(self):
        p = Point(10, 20)
        assert p.x == 10
        assert p.y == 20
    
    def test_within(self):
        assert Point(0, 0).within(10, 10)
        assert Point(9, 9).within(10, 10)
        assert not Point(10, 0).within(10, 10)
        assert not Point(-1, 5).within(10, 10)
    
    def test_parse(self):
        assert Point.parse("12,34") == Point(12, 34)
        assert Point.parse("1.9,2") == Point(1, 2)
    
    def test_parse_rejects_garbage(self):
        with pytest.raises(ValueError):
            Point.parse("12")


class TestBoundingBox:
    """Tests for BoundingBox class."""
    
    def test_creation(self):
        box = BoundingBox(0, 0, 100, 100)
        assert box.max_x == 100
        assert box.max_y == 100
    
    def test_negative_extent_rejected(self):
        with pytest.raises(ValueError):
            BoundingBox(0, 0, -1, 5)
    
    def test_intersects(self):
        assert BoundingBox(0, 0, 100, 100).intersects(BoundingBox(50, 50, 100, 100))
    
    def test_touching_edges_do_not_intersect(self):
        assert not BoundingBox(0, 0, 100, 100).intersects(BoundingBox(100, 0, 10, 10))
    
    def test_from_corners(self):
        assert BoundingBox.from_corners(10.4, 20.0, 30.6, 40.0) == BoundingBox(10, 20, 21, 20)
    
    def test_from_mask_is_inclusive(self):
        mask = np.zeros((100, 100), dtype=bool)
        mask[10:20, 30:35] = True
        assert BoundingBox.from_mask(mask) == BoundingBox(30, 10, 5, 10)
    
    def test_from_empty_mask(self):
        assert BoundingBox.from_mask(np.zeros((4, 4), dtype=bool)) == BoundingBox(0, 0, 0, 0)
    
    def test_to_dict(self):
        assert BoundingBox(1, 2, 3, 4).to_dict() == {"x": 1, "y": 2, "width": 3, "height": 4}


class TestMaskPolygon:
    """Tests for MaskPolygon class."""
    
    def test_needs_three_points(self):
        with pytest.raises(ValueError):
            MaskPolygon.from_points([(0, 0), (1, 1)])
    
    def test_length(self):
        square = MaskPolygon.from_points([(0, 0), (10, 0), (10, 10), (0, 10)])
        assert len(square) == 4
    
    def test_rasterize_includes_boundary(self):
        square = MaskPolygon.from_points([(4, 4), (6, 4), (6, 6), (4, 6)])
        mask = square.rasterize(10, 10)
        assert mask.shape == (10, 10)
        assert mask.dtype == bool
        assert mask.sum() == 9
        assert mask[4:7, 4:7].all()
    
    def test_rasterize_clips_to_buffer(self):
        polygon = MaskPolygon.from_points([(-5, -5), (5, -5), (5, 5), (-5, 5)])
        mask = polygon.rasterize(10, 10)
        assert mask[0:6, 0:6].all()
        assert mask.sum() == 36
    
    def test_to_json(self):
        triangle = MaskPolygon.from_points([(0, 0), (4, 0), (0, 3)])
        assert json.loads(triangle.to_json()) == [
            {"x": 0, "y": 0}, {"x": 4, "y": 0}, {"x": 0, "y": 3}
        ]
    
    def test_parse(self):
        polygon = MaskPolygon.parse("1,2 3,4;5,6")
        assert list(polygon) == [Point(1, 2), Point(3, 4), Point(5, 6)]
