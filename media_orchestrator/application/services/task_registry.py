"""Task registry - operation ids and their cancellation tokens."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag shared between an operation and its caller."""
    
    def __init__(self):
        self._event = threading.Event()
    
    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()
    
    def cancel(self) -> None:
        self._event.set()
    
    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; returns True early if cancelled."""
        return self._event.wait(timeout)


@dataclass(eq=False)
class OperationHandle:
    """Trackable, cancellable identity of one submitted operation."""
    id: str
    token: CancellationToken = field(default_factory=CancellationToken)
    future: Any = None  # concurrent.futures.Future once submitted
    
    @property
    def is_cancelled(self) -> bool:
        return self.token.is_cancelled
    
    @property
    def done(self) -> bool:
        return self.future is not None and self.future.done()
    
    def cancel(self) -> None:
        self.token.cancel()
    
    def result(self, timeout: float | None = None) -> Any:
        """Block until the operation's result is available.
        
        Raises:
            RuntimeError: If the handle was never submitted
        """
        if self.future is None:
            raise RuntimeError(f"Operation {self.id} was not submitted")
        return self.future.result(timeout=timeout)


@dataclass
class _Entry:
    handle: OperationHandle
    terminal: bool = False


class TaskRegistry:
    """Maps operation ids to handles.
    
    Shared by concurrently running operations; every mutation happens under
    one lock so cancellation racing with completion stays consistent.
    """
    
    def __init__(self):
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()
    
    def register(self) -> OperationHandle:
        """Allocate a fresh id and cancellation token."""
        handle = OperationHandle(id=uuid.uuid4().hex)
        with self._lock:
            self._entries[handle.id] = _Entry(handle)
        logger.debug(f"Registered operation {handle.id}")
        return handle
    
    def get(self, operation_id: str) -> OperationHandle | None:
        with self._lock:
            entry = self._entries.get(operation_id)
            return entry.handle if entry else None
    
    def cancel(self, operation_id: str) -> bool:
        """Signal an operation's token.
        
        Unknown and already-terminal ids are ignored.
        
        Returns:
            True if a running operation was signalled
        """
        with self._lock:
            entry = self._entries.get(operation_id)
            if entry is None or entry.terminal:
                return False
            entry.handle.token.cancel()
        logger.info(f"Cancellation requested for operation {operation_id}")
        return True
    
    def mark_terminal(self, operation_id: str) -> None:
        """Record that the operation delivered its terminal result.
        
        The token is signalled too, so nothing keeps working on the handle
        and the entry becomes eligible for sweep.
        """
        with self._lock:
            entry = self._entries.get(operation_id)
            if entry is None:
                return
            entry.terminal = True
            entry.handle.token.cancel()
    
    def sweep(self) -> int:
        """Drop entries that are signalled and terminal.
        
        Returns:
            Number of entries removed
        """
        with self._lock:
            stale = [
                op_id for op_id, entry in self._entries.items()
                if entry.terminal and entry.handle.token.is_cancelled
            ]
            for op_id in stale:
                del self._entries[op_id]
        if stale:
            logger.debug(f"Swept {len(stale)} finished operation(s)")
        return len(stale)
    
    def cancel_all(self) -> int:
        """Signal every running operation."""
        with self._lock:
            running = [e.handle for e in self._entries.values() if not e.terminal]
            for handle in running:
                handle.token.cancel()
        return len(running)
    
    @property
    def active_count(self) -> int:
        """Operations that have not reached a terminal state."""
        with self._lock:
            return sum(1 for e in self._entries.values() if not e.terminal)
    
    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
    
    def __contains__(self, operation_id: object) -> bool:
        with self._lock:
            return operation_id in self._entries
