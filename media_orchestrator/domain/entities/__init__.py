"""Domain entities."""

from .detection import DetectedObject
from .pixel_buffer import PixelBuffer
from .result import ErrorKind, OperationResult

__all__ = ['PixelBuffer', 'DetectedObject', 'OperationResult', 'ErrorKind']
