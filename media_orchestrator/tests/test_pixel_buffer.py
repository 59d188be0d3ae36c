"""Tests for the pixel buffer entity."""

import io
import struct
import zlib

import numpy as np
import pytest
from PIL import Image

from ..domain.entities.pixel_buffer import PixelBuffer


def oversized_png(width=20000, height=20000):
    """PNG header declaring a huge image, with no pixel data behind it."""
    def chunk(tag, data):
        body = tag + data
        return struct.pack(">I", len(data)) + body + struct.pack(">I", zlib.crc32(body) & 0xFFFFFFFF)
    
    ihdr = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IDAT", b"") + chunk(b"IEND", b"")


class TestPixelBuffer:
    """Test pixel buffer construction and conversion."""
    
    def test_shape_validation(self):
        with pytest.raises(ValueError):
            PixelBuffer(np.zeros((10, 10, 3), dtype=np.uint8))
    
    def test_dimensions(self):
        pixels = PixelBuffer.blank(30, 20)
        assert pixels.width == 30
        assert pixels.height == 20
        assert pixels.size == (30, 20)
        assert pixels.nbytes == 30 * 20 * 4
        assert not pixels.is_empty
    
    def test_from_bytes_row_major(self):
        raw = bytes(range(2 * 3 * 4))
        pixels = PixelBuffer.from_bytes(3, 2, raw)
        assert tuple(pixels.data[1, 0]) == (12, 13, 14, 15)
        assert pixels.to_bytes() == raw
    
    def test_from_bytes_wrong_length(self):
        with pytest.raises(ValueError):
            PixelBuffer.from_bytes(3, 2, b"\x00" * 10)
    
    def test_copy_is_independent(self):
        pixels = PixelBuffer.blank(4, 4)
        clone = pixels.copy()
        clone.data[0, 0] = (1, 2, 3, 4)
        assert tuple(pixels.data[0, 0]) == (0, 0, 0, 255)
    
    def test_encode_png_roundtrip_preserves_alpha(self):
        pixels = PixelBuffer.blank(8, 8, (10, 20, 30, 128))
        decoded = PixelBuffer.decode(pixels.encode("image/png"))
        assert np.array_equal(decoded.data, pixels.data)
    
    def test_encode_jpeg_drops_alpha(self):
        payload = PixelBuffer.blank(8, 8, (10, 20, 30, 128)).encode("image/jpeg")
        with Image.open(io.BytesIO(payload)) as img:
            assert img.format == "JPEG"
            assert img.mode == "RGB"
    
    def test_encode_unknown_format(self):
        with pytest.raises(ValueError):
            PixelBuffer.blank(2, 2).encode("image/avif")
    
    def test_decode_resizes(self):
        payload = PixelBuffer.blank(16, 8).encode("image/png")
        assert PixelBuffer.decode(payload, size=(32, 16)).size == (32, 16)
    
    def test_decode_garbage(self):
        with pytest.raises(ValueError):
            PixelBuffer.decode(b"not an image")
    
    def test_decode_rejects_decompression_bomb(self):
        with pytest.raises(ValueError):
            PixelBuffer.decode(oversized_png())
    
    def test_file_roundtrip(self, tmp_path):
        pixels = PixelBuffer.blank(5, 5, (1, 2, 3, 255))
        path = tmp_path / "out.png"
        pixels.save(path)
        assert np.array_equal(PixelBuffer.from_file(path).data, pixels.data)
    
    def test_from_image_converts_mode(self):
        pixels = PixelBuffer.from_image(Image.new("RGB", (3, 2), (9, 8, 7)))
        assert tuple(pixels.data[0, 0]) == (9, 8, 7, 255)
