"""Unit tests for flood-fill region growing."""

import numpy as np
import pytest
from media_orchestrator.application.services.task_registry import CancellationToken
from media_orchestrator.domain.entities.pixel_buffer import PixelBuffer
from media_orchestrator.domain.services.region_growing import grow_region, region_to_detection
from media_orchestrator.domain.value_objects.geometry import BoundingBox, Point
from media_orchestrator.exceptions import InvalidSelectionError, OperationCancelledError


RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


@pytest.fixture
def red_square():
    """100x100 red square on a 200x200 blue background."""
    pixels = PixelBuffer.blank(200, 200, BLUE)
    pixels.data[0:100, 0:100] = RED
    return pixels


class TestGrowRegion:
    """Tests for grow_region."""
    
    def test_uniform_square(self, red_square):
        region = grow_region(red_square, Point(50, 50))
        assert region.size == 10000
        assert region.bounding_box == BoundingBox(0, 0, 100, 100)
        assert not region.mask[100:, :].any()
    
    def test_threshold_admits_similar_colours(self):
        pixels = PixelBuffer.blank(20, 20, (100, 100, 100, 255))
        pixels.data[:, 10:] = (120, 110, 110, 255)  # distance 40
        region = grow_region(pixels, Point(0, 0), threshold=50)
        assert region.size == 400
    
    def test_threshold_rejects_distant_colours(self):
        pixels = PixelBuffer.blank(20, 20, (100, 100, 100, 255))
        pixels.data[:, 10:] = (130, 120, 110, 255)  # distance 60
        region = grow_region(pixels, Point(0, 0), threshold=50)
        assert region.size == 200
    
    def test_four_connected_only(self):
        pixels = PixelBuffer.blank(3, 3, BLUE)
        pixels.data[0, 0] = RED
        pixels.data[1, 1] = RED  # diagonal neighbour only
        region = grow_region(pixels, Point(0, 0))
        assert region.points() == {Point(0, 0)}
    
    def test_cap(self, red_square):
        region = grow_region(red_square, Point(50, 50), cap=500)
        assert region.size == 500
    
    def test_region_crosses_tiles(self):
        pixels = PixelBuffer.blank(250, 30, RED)
        region = grow_region(pixels, Point(10, 10), tile_size=100, cap=100_000)
        assert region.size == 250 * 30
    
    def test_idempotent(self, red_square):
        first = grow_region(red_square, Point(10, 90), cap=2000)
        second = grow_region(red_square, Point(10, 90), cap=2000)
        assert np.array_equal(first.mask, second.mask)
    
    def test_input_not_modified(self, red_square):
        before = red_square.data.copy()
        grow_region(red_square, Point(50, 50))
        assert np.array_equal(red_square.data, before)
    
    def test_seed_outside_buffer(self, red_square):
        with pytest.raises(InvalidSelectionError):
            grow_region(red_square, Point(200, 5))
    
    def test_empty_buffer(self):
        empty = PixelBuffer(np.zeros((0, 0, 4), dtype=np.uint8))
        with pytest.raises(InvalidSelectionError):
            grow_region(empty, Point(0, 0))
    
    def test_cancelled_before_first_tile(self, red_square):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelledError):
            grow_region(red_square, Point(50, 50), token=token)
    
    def test_cancelled_between_tiles(self):
        pixels = PixelBuffer.blank(300, 10, RED)
        token = CancellationToken()
        visits = []
        
        def on_tile(done, total):
            visits.append(done)
            token.cancel()
        
        with pytest.raises(OperationCancelledError):
            grow_region(pixels, Point(0, 0), tile_size=100, cap=100_000, token=token, on_tile=on_tile)
        assert visits == [1]
    
    def test_tile_progress_reported(self):
        pixels = PixelBuffer.blank(200, 10, RED)
        calls = []
        grow_region(pixels, Point(0, 0), tile_size=100, cap=100_000, on_tile=lambda d, t: calls.append((d, t)))
        assert calls == [(1, 2), (2, 2)]


class TestRegionToDetection:
    """Tests for the synthetic fallback detection."""
    
    def test_large_region(self, red_square):
        objects = region_to_detection(grow_region(red_square, Point(50, 50)))
        assert len(objects) == 1
        obj = objects[0]
        assert obj.id == "fallback_0"
        assert obj.label == "Detected Region"
        assert obj.confidence == 0.7
        assert obj.color == "#FF6B6B"
        assert obj.bbox == BoundingBox(0, 0, 100, 100)
        assert obj.has_mask
    
    def test_small_region_is_no_detection(self):
        pixels = PixelBuffer.blank(50, 50, BLUE)
        pixels.data[0:9, 0:11] = RED  # 99 pixels
        assert region_to_detection(grow_region(pixels, Point(0, 0))) == []
    
    def test_minimum_size_is_inclusive(self):
        pixels = PixelBuffer.blank(50, 50, BLUE)
        pixels.data[0:10, 0:10] = RED  # exactly 100 pixels
        assert len(region_to_detection(grow_region(pixels, Point(0, 0)))) == 1
