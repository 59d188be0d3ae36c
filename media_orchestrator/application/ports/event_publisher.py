"""Event Publisher port - progress events for one operation."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class ProgressStage(str, Enum):
    """Stage tags carried by progress events."""
    INITIALIZING = "initializing"
    PREPARING = "preparing"
    CONTACTING_PROVIDER = "contacting_provider"
    PROVIDER_PROCESSING = "provider_processing"
    FALLING_BACK = "falling_back"
    LOCAL_PROCESSING = "local_processing"
    FINALIZING = "finalizing"
    COMPLETE = "complete"


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """Progress update during an operation."""
    stage: ProgressStage
    progress: float  # 0 to 100
    message: str
    operation_id: str = ""
    estimated_time_remaining: float | None = None  # seconds
    warning: str | None = None  # memory soft-limit crossing


ProgressCallback = Callable[[ProgressEvent], None]


@runtime_checkable
class EventPublisher(Protocol):
    """Port for publishing processing events."""
    
    def publish(self, event: ProgressEvent) -> None:
        """Publish an event."""
        ...
    
    def subscribe(self, callback: ProgressCallback) -> None:
        """Subscribe to events."""
        ...


class SimpleEventPublisher:
    """Simple synchronous event publisher.
    
    Subscriber exceptions are logged and do not reach the publishing
    operation.
    """
    
    def __init__(self):
        self._subscribers: list[ProgressCallback] = []
        self._lock = threading.Lock()
    
    def publish(self, event: ProgressEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception(f"Progress subscriber failed on {event.stage.value} event")
    
    def subscribe(self, callback: ProgressCallback) -> None:
        with self._lock:
            self._subscribers.append(callback)
