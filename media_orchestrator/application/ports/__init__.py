"""Ports - interfaces for external dependencies (Dependency Inversion)."""

from .event_publisher import (
    EventPublisher,
    ProgressCallback,
    ProgressEvent,
    ProgressStage,
    SimpleEventPublisher,
)
from .provider_client import ProviderClient, ProviderRequest, ProviderResponse

__all__ = [
    'EventPublisher',
    'ProgressCallback',
    'ProgressEvent',
    'ProgressStage',
    'SimpleEventPublisher',
    'ProviderClient',
    'ProviderRequest',
    'ProviderResponse',
]
