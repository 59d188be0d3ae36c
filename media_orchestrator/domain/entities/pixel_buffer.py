"""Pixel buffer entity - RGBA image data owned by one pipeline stage at a time."""

from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import numpy.typing as npt

from ...config import ENCODABLE_FORMATS

RGBAArray = npt.NDArray[np.uint8]  # Shape (H, W, 4)


@dataclass(eq=False, slots=True)
class PixelBuffer:
    """Row-major RGBA pixels, 4 bytes per pixel.
    
    Whoever holds the buffer may mutate it; stages hand it over instead of
    sharing it. Use ``copy()`` to get a private working copy.
    """
    data: RGBAArray
    
    def __post_init__(self) -> None:
        arr = np.asarray(self.data)
        if arr.ndim != 3 or arr.shape[2] != 4:
            raise ValueError(f"PixelBuffer expects (H, W, 4) data, got shape {arr.shape}")
        if arr.dtype != np.uint8:
            arr = arr.astype(np.uint8)
        self.data = np.ascontiguousarray(arr)
    
    @property
    def width(self) -> int:
        return int(self.data.shape[1])
    
    @property
    def height(self) -> int:
        return int(self.data.shape[0])
    
    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)
    
    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0
    
    @property
    def nbytes(self) -> int:
        return int(self.data.nbytes)
    
    def copy(self) -> PixelBuffer:
        return PixelBuffer(self.data.copy())
    
    def to_bytes(self) -> bytes:
        return self.data.tobytes()
    
    def to_image(self) -> object:
        """Convert to an RGBA PIL image."""
        from PIL import Image as PILImage
        return PILImage.fromarray(self.data)
    
    def save(self, path: Path | str) -> None:
        """Save buffer to an image file."""
        self.to_image().save(path)
    
    def encode(self, mime: str = "image/png") -> bytes:
        """Encode as an image payload for a provider.
        
        JPEG has no alpha channel, so alpha is dropped for it.
        
        Raises:
            ValueError: If the MIME type is not encodable
        """
        if mime not in ENCODABLE_FORMATS:
            raise ValueError(f"Cannot encode pixels as {mime}")
        image = self.to_image()
        if mime == "image/jpeg":
            image = image.convert("RGB")
        out = io.BytesIO()
        image.save(out, format=ENCODABLE_FORMATS[mime])
        return out.getvalue()
    
    @classmethod
    def blank(cls, width: int, height: int, color: tuple[int, int, int, int] = (0, 0, 0, 255)) -> PixelBuffer:
        data = np.empty((height, width, 4), dtype=np.uint8)
        data[...] = color
        return cls(data)
    
    @classmethod
    def from_bytes(cls, width: int, height: int, raw: bytes | bytearray | memoryview) -> PixelBuffer:
        """Create from raw RGBA bytes as produced by a canvas.
        
        Raises:
            ValueError: If the byte count does not match width x height x 4
        """
        expected = width * height * 4
        if len(raw) != expected:
            raise ValueError(f"Expected {expected} bytes for {width}x{height} RGBA, got {len(raw)}")
        data = np.frombuffer(bytes(raw), dtype=np.uint8).reshape(height, width, 4)
        return cls(data.copy())
    
    @classmethod
    def from_image(cls, image: object) -> PixelBuffer:
        """Create from a PIL image of any mode."""
        return cls(np.array(image.convert("RGBA")))
    
    @classmethod
    def from_file(cls, path: Path | str) -> PixelBuffer:
        """Load image from file."""
        # Lazy import - domain doesn't depend on PIL
        from PIL import Image as PILImage
        with PILImage.open(Path(path)) as img:
            return cls.from_image(img)
    
    @classmethod
    def decode(cls, payload: bytes, size: tuple[int, int] | None = None) -> PixelBuffer:
        """Decode an image payload returned by a provider.
        
        Args:
            payload: Encoded image bytes
            size: Optional (width, height) to resize the result back to
            
        Raises:
            ValueError: If the payload is not a decodable image, or declares
                more pixels than Pillow's decompression bomb limit
        """
        from PIL import Image as PILImage, UnidentifiedImageError
        
        try:
            with PILImage.open(io.BytesIO(payload)) as img:
                img.load()
                image = img.convert("RGBA")
        except (UnidentifiedImageError, PILImage.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
            raise ValueError(f"Undecodable image payload: {e}") from e
        
        if size is not None and image.size != size:
            image = image.resize(size, PILImage.Resampling.LANCZOS)
        return cls(np.array(image))
