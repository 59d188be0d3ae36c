"""Tests for provider request encoding and response normalization."""

import json

import numpy as np
import pytest

from ..adapters.providers.encoding import build_request
from ..adapters.providers.normalizers import (
    normalize_image,
    normalize_masks,
    normalize_predictions,
    normalize_segments,
    parse_bbox,
)
from ..application.ports.provider_client import ProviderResponse
from ..config import OperationKind, RequestFormat, ResponseFormat
from ..domain.entities.detection import DetectedObject
from ..domain.entities.pixel_buffer import PixelBuffer
from ..domain.value_objects.config import ProviderDescriptor
from ..domain.value_objects.geometry import BoundingBox, MaskPolygon, Point
from ..exceptions import ConfigurationError, ProviderResponseMalformedError
from ..infrastructure.normalizer_registry import NormalizerRegistry


def detector(response_format=ResponseFormat.PREDICTIONS, **overrides):
    values = dict(
        name="DETR Panoptic",
        endpoint="/detr",
        kind=OperationKind.DETECTION,
        model_id="facebook/detr-resnet-50-panoptic",
        model_type="detr",
        request_format=RequestFormat.DETECTION,
        response_format=response_format,
    )
    values.update(overrides)
    return ProviderDescriptor(**values)


def remover(**overrides):
    values = dict(name="RemBG", endpoint="/rembg", kind=OperationKind.REMOVAL)
    values.update(overrides)
    return ProviderDescriptor(**values)


def json_response(payload):
    return ProviderResponse(200, json.dumps(payload).encode(), "application/json")


HINT = DetectedObject(
    id="sam_0", label="cat", confidence=0.9, bbox=BoundingBox(1, 2, 3, 4), color="#FF6B6B"
)


class TestBuildRequest:
    """Test multipart field encoding per request format."""
    
    def test_detection_fields(self):
        request = build_request(detector(), PixelBuffer.blank(4, 4), Point(1, 2))
        assert request.image_mime == "image/png"
        assert request.fields["model_id"] == "facebook/detr-resnet-50-panoptic"
        assert request.fields["model_type"] == "detr"
        assert json.loads(request.fields["click_point"]) == {"x": 1, "y": 2}
        assert PixelBuffer.decode(request.image).size == (4, 4)
    
    def test_mask_points_fields(self):
        polygon = MaskPolygon.from_points([(0, 0), (3, 0), (3, 3)])
        request = build_request(remover(), PixelBuffer.blank(4, 4), polygon)
        assert json.loads(request.fields["mask_points"])[1] == {"x": 3, "y": 0}
        assert request.fields["model"] == "RemBG"
    
    def test_inpainting_fields(self):
        descriptor = remover(request_format=RequestFormat.INPAINTING)
        request = build_request(descriptor, PixelBuffer.blank(4, 4), None, hint=HINT)
        assert request.fields["task"] == "inpainting"
        assert json.loads(request.fields["object_data"])["label"] == "cat"
    
    def test_inpainting_without_hint(self):
        descriptor = remover(request_format=RequestFormat.INPAINTING)
        with pytest.raises(ConfigurationError):
            build_request(descriptor, PixelBuffer.blank(4, 4), None)
    
    def test_uses_first_encodable_format(self):
        descriptor = remover(supported_formats=("image/avif", "image/jpeg"))
        polygon = MaskPolygon.from_points([(0, 0), (3, 0), (3, 3)])
        assert build_request(descriptor, PixelBuffer.blank(4, 4), polygon).image_mime == "image/jpeg"


class TestParseBbox:
    
    def test_dict(self):
        assert parse_bbox({"x": 1, "y": 2, "width": 3, "height": 4}) == BoundingBox(1, 2, 3, 4)
    
    def test_corners(self):
        assert parse_bbox({"xmin": 1, "ymin": 2, "xmax": 11, "ymax": 22}) == BoundingBox(1, 2, 10, 20)
    
    def test_list(self):
        assert parse_bbox([1.2, 2, 3, 4.6]) == BoundingBox(1, 2, 3, 5)
    
    def test_garbage(self):
        with pytest.raises(ValueError):
            parse_bbox("1,2,3,4")


class TestNormalizers:
    """Test the three detection payload shapes and image payloads."""
    
    def test_predictions(self):
        response = json_response({"predictions": [
            {"label": "cat", "score": 0.95, "box": {"xmin": 10, "ymin": 20, "xmax": 50, "ymax": 60}},
            {"label": "dog", "score": 0.5, "box": {"xmin": 0, "ymin": 0, "xmax": 5, "ymax": 5}},
        ]})
        objects = normalize_predictions(response, detector(), (100, 100))
        assert [o.id for o in objects] == ["detr_0", "detr_1"]
        assert objects[0].bbox == BoundingBox(10, 20, 40, 40)
        assert objects[0].confidence == 0.95
        assert objects[0].color != objects[1].color
    
    def test_segments_defaults_and_mask_bbox(self):
        mask = np.zeros((10, 10), dtype=int)
        mask[2:5, 3:9] = 1
        response = json_response({"segments": [
            {"label": "wall", "bbox": [0, 0, 10, 10]},
            {"label": "door", "score": 0.6, "mask": mask.tolist()},
        ]})
        objects = normalize_segments(response, detector(ResponseFormat.SEGMENTS, model_type="mask2former"), (10, 10))
        assert objects[0].confidence == 0.8
        assert objects[1].bbox == BoundingBox(3, 2, 6, 3)
        assert objects[1].has_mask
    
    def test_segment_without_bbox_or_mask(self):
        response = json_response({"segments": [{"label": "sky"}]})
        with pytest.raises(ProviderResponseMalformedError):
            normalize_segments(response, detector(ResponseFormat.SEGMENTS), (10, 10))
    
    def test_masks(self):
        response = json_response({"masks": [{"bbox": [1, 1, 4, 4], "segmentation": [[0, 1]]}]})
        objects = normalize_masks(response, detector(ResponseFormat.MASKS, model_type="sam"), (10, 10))
        assert objects[0].id == "sam_0"
        assert objects[0].label == "Detected Object"
        assert objects[0].confidence == 0.9
    
    def test_empty_list_is_valid(self):
        assert normalize_predictions(json_response({"predictions": []}), detector(), (10, 10)) == []
    
    @pytest.mark.parametrize("payload", [
        {"predictions": [{"label": "cat", "score": 1.5, "box": {"xmin": 0, "ymin": 0, "xmax": 1, "ymax": 1}}]},
        {"predictions": [{"label": "cat", "box": {"xmin": 0, "ymin": 0, "xmax": 1, "ymax": 1}}]},
        {"predictions": [{"label": "cat", "score": 0.5, "box": {"xmin": 5, "ymin": 0, "xmax": 1, "ymax": 1}}]},
        {"predictions": ["cat"]},
        {"results": []},
        [],
    ])
    def test_malformed_predictions(self, payload):
        with pytest.raises(ProviderResponseMalformedError):
            normalize_predictions(json_response(payload), detector(), (10, 10))
    
    def test_not_json(self):
        with pytest.raises(ProviderResponseMalformedError):
            normalize_masks(ProviderResponse(200, b"<html>"), detector(ResponseFormat.MASKS), (10, 10))
    
    def test_image_resized_to_input(self):
        payload = PixelBuffer.blank(20, 10, (1, 2, 3, 255)).encode("image/png")
        pixels = normalize_image(ProviderResponse(200, payload, "image/png"), remover(), (40, 20))
        assert pixels.size == (40, 20)
    
    @pytest.mark.parametrize("content", [b"", b"garbage"])
    def test_bad_image(self, content):
        with pytest.raises(ProviderResponseMalformedError):
            normalize_image(ProviderResponse(200, content), remover(), (4, 4))


class TestNormalizerRegistry:
    
    def test_builtins_present(self):
        assert set(NormalizerRegistry.list_available()) >= {"predictions", "segments", "masks", "image"}
        assert NormalizerRegistry.get(ResponseFormat.MASKS) is normalize_masks
