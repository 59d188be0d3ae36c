"""Application layer - use cases and orchestration."""

from .services.orchestrator import ProcessingOrchestrator
from .services.provider_chain import ProviderChainCoordinator

__all__ = ['ProcessingOrchestrator', 'ProviderChainCoordinator']
