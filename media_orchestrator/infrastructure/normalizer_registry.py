"""Normalizer registry - discovers response normalizers via entry points."""

from __future__ import annotations

import logging
from functools import lru_cache
from importlib.metadata import entry_points

from ..adapters.providers.normalizers import (
    Normalizer,
    normalize_image,
    normalize_masks,
    normalize_predictions,
    normalize_segments,
)
from ..config import ResponseFormat
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class NormalizerRegistry:
    """Registry mapping response formats to normalizer callables.
    
    Uses entry points for discovery so a package can teach the coordinator a
    new provider payload shape:
    
    [project.entry-points."media_orchestrator.normalizers"]
    segments = "my_package:normalize_my_segments"
    
    Entry point names must be ResponseFormat values. Built-ins are always
    present; a discovered plugin with the same name replaces the built-in.
    """
    
    GROUP = "media_orchestrator.normalizers"
    
    BUILTINS: dict[ResponseFormat, Normalizer] = {
        ResponseFormat.PREDICTIONS: normalize_predictions,
        ResponseFormat.SEGMENTS: normalize_segments,
        ResponseFormat.MASKS: normalize_masks,
        ResponseFormat.IMAGE: normalize_image,
    }
    
    @classmethod
    @lru_cache(maxsize=1)
    def discover(cls) -> dict[ResponseFormat, Normalizer]:
        """Built-in normalizers merged with discovered plugins.
        
        Returns:
            Dict mapping response formats to normalizers
        """
        normalizers = dict(cls.BUILTINS)
        
        for ep in entry_points(group=cls.GROUP):
            try:
                fmt = ResponseFormat(ep.name)
            except ValueError:
                logger.warning(f"Ignoring normalizer {ep.name}: not a known response format")
                continue
            try:
                normalizers[fmt] = ep.load()
                logger.debug(f"Discovered normalizer: {ep.name}")
            except Exception as e:
                logger.warning(f"Failed to load normalizer {ep.name}: {e}")
        
        return normalizers
    
    @classmethod
    def get(cls, fmt: ResponseFormat) -> Normalizer:
        """Normalizer for a response format.
        
        Raises:
            ConfigurationError: If no normalizer handles the format
        """
        normalizers = cls.discover()
        if fmt not in normalizers:
            available = ", ".join(f.value for f in normalizers)
            raise ConfigurationError(
                f"No normalizer for {fmt}. Available: {available}",
                config_key="response_format",
            )
        return normalizers[fmt]
    
    @classmethod
    def list_available(cls) -> list[str]:
        """List supported response format names."""
        return [f.value for f in cls.discover()]
