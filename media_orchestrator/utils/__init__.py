"""Utility helpers."""

from .env import load_api_key, setup_logging

__all__ = ['load_api_key', 'setup_logging']
