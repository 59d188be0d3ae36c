"""Resource monitor - samples process memory and enforces limits."""

from __future__ import annotations

import gc
import logging
import os
import threading
from typing import Callable, Optional

import psutil

from ...domain.value_objects.config import OrchestratorConfig
from .task_registry import TaskRegistry

logger = logging.getLogger(__name__)

# Returns current usage in MB, or None when it cannot be measured
MemorySampler = Callable[[], Optional[float]]


def process_rss_mb() -> float | None:
    """Resident set size of this process in megabytes, None if unavailable."""
    try:
        return psutil.Process(os.getpid()).memory_info().rss / (1024 * 1024)
    except (psutil.Error, OSError) as e:
        logger.debug(f"Memory sampling unavailable: {e}")
        return None


class ResourceMonitor:
    """Tracks approximate memory use against soft and hard limits.
    
    Sampling runs on a daemon thread at a fixed cadence, independent of any
    operation. A failed sample means "unknown usage", which is never over a
    limit.
    
    Example:
        with ResourceMonitor(config, registry) as monitor:
            if monitor.is_over_hard_limit():
                ...
    """
    
    def __init__(
        self,
        config: OrchestratorConfig | None = None,
        registry: TaskRegistry | None = None,
        sampler: MemorySampler | None = None,
    ):
        self.config = config or OrchestratorConfig()
        self._registry = registry
        self._sampler = sampler or process_rss_mb
        self._usage_mb: float | None = None
        self._over_soft = False
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
    
    @property
    def hard_limit_mb(self) -> float:
        return self.config.hard_limit_mb
    
    @property
    def soft_limit_mb(self) -> float:
        return self.config.soft_limit_mb
    
    @property
    def usage_mb(self) -> float | None:
        """Last sampled usage (None if unknown)."""
        with self._lock:
            return self._usage_mb
    
    def sample_usage_mb(self) -> float | None:
        """Take a fresh sample, update limit state and return it."""
        try:
            usage = self._sampler()
        except Exception as e:
            logger.debug(f"Memory sampler failed: {e}")
            usage = None
        
        with self._lock:
            self._usage_mb = usage
            was_over_soft = self._over_soft
            self._over_soft = usage is not None and usage > self.soft_limit_mb
            crossed_soft = self._over_soft and not was_over_soft
        
        if crossed_soft:
            logger.warning(
                f"Memory usage {usage:.0f} MB crossed soft limit {self.soft_limit_mb:.0f} MB"
            )
        if usage is not None and usage > self.hard_limit_mb:
            logger.warning(
                f"Memory usage {usage:.0f} MB above hard limit {self.hard_limit_mb:.0f} MB, triggering cleanup"
            )
            self.cleanup()
        return usage
    
    def is_over_soft_limit(self) -> bool:
        usage = self.usage_mb
        return usage is not None and usage > self.soft_limit_mb
    
    def is_over_hard_limit(self) -> bool:
        usage = self.usage_mb
        return usage is not None and usage > self.hard_limit_mb
    
    @property
    def warning_message(self) -> str | None:
        """Soft-limit warning for progress events, None when below it."""
        usage = self.usage_mb
        if usage is None or usage <= self.soft_limit_mb:
            return None
        return (
            f"High memory usage: {usage:.0f} MB of {self.hard_limit_mb:.0f} MB; "
            "new operations will be refused above the limit"
        )
    
    def cleanup(self) -> None:
        """Sweep finished operations and ask the runtime to reclaim buffers."""
        if self._registry is not None:
            self._registry.sweep()
        gc.collect()
    
    def start(self) -> None:
        """Start the background sampling thread."""
        if self._thread is not None and self._thread.is_alive():
            logger.debug("Resource monitor already started")
            return
        
        self._stop_event.clear()
        self.sample_usage_mb()
        self._thread = threading.Thread(
            target=self._run,
            name="ResourceMonitor",
            daemon=True,
        )
        self._thread.start()
        logger.debug(f"Resource monitor sampling every {self.config.sample_interval_seconds}s")
    
    def _run(self) -> None:
        while not self._stop_event.wait(self.config.sample_interval_seconds):
            self.sample_usage_mb()
    
    def stop(self, timeout: float = 1.0) -> None:
        """Stop the sampling thread."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
    
    def __enter__(self) -> ResourceMonitor:
        self.start()
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
