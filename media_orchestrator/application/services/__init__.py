"""Application services."""

from .orchestrator import OperationState, ProcessingOrchestrator
from .provider_chain import AttemptRecord, ChainOutcome, ChainStatus, ProviderChainCoordinator
from .resource_monitor import ResourceMonitor, process_rss_mb
from .task_registry import CancellationToken, OperationHandle, TaskRegistry

__all__ = [
    'ProcessingOrchestrator',
    'OperationState',
    'ProviderChainCoordinator',
    'ChainOutcome',
    'ChainStatus',
    'AttemptRecord',
    'ResourceMonitor',
    'process_rss_mb',
    'TaskRegistry',
    'OperationHandle',
    'CancellationToken',
]
