"""Adapters - concrete implementations of ports."""

from .providers import RequestsProviderClient, build_request

__all__ = ['RequestsProviderClient', 'build_request']
