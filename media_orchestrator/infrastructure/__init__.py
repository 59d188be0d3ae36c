"""Infrastructure - plugin discovery."""

from .normalizer_registry import NormalizerRegistry

__all__ = ['NormalizerRegistry']
