"""Remote provider adapters."""

from .encoding import build_request
from .http_client import RequestsProviderClient
from .normalizers import (
    normalize_image,
    normalize_masks,
    normalize_predictions,
    normalize_segments,
    parse_bbox,
)

__all__ = [
    'RequestsProviderClient',
    'build_request',
    'normalize_predictions',
    'normalize_segments',
    'normalize_masks',
    'normalize_image',
    'parse_bbox',
]
