"""Processing orchestrator - the per-operation state machine."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Sequence, Union

from ...config import OperationKind
from ...domain.entities.detection import DetectedObject
from ...domain.entities.pixel_buffer import PixelBuffer
from ...domain.entities.result import ErrorKind, OperationResult
from ...domain.services.region_analysis import RegionAnalysisEngine
from ...domain.services.tiling import check_cancelled
from ...domain.value_objects.config import OrchestratorConfig, ProviderCatalog, ProviderDescriptor
from ...domain.value_objects.geometry import MaskPolygon, Point
from ...exceptions import (
    FallbackFailedError,
    InvalidSelectionError,
    MediaOrchestratorError,
    OperationCancelledError,
    ResourceExhaustedError,
)
from ..ports.event_publisher import (
    EventPublisher,
    ProgressCallback,
    ProgressEvent,
    ProgressStage,
    SimpleEventPublisher,
)
from ..ports.provider_client import ProviderClient
from .provider_chain import ChainStatus, ProviderChainCoordinator
from .resource_monitor import ResourceMonitor
from .task_registry import OperationHandle, TaskRegistry

logger = logging.getLogger(__name__)

Selection = Union[MaskPolygon, Point, Sequence[Union[Point, tuple[int, int]]]]


class OperationState(str, Enum):
    INITIALIZING = "initializing"
    PREPARING_INPUT = "preparing_input"
    TRYING_PROVIDERS = "trying_providers"
    LOCAL_FALLBACK = "local_fallback"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    FAILED = "failed"


# Stage tag and progress emitted when entering each state
TRANSITIONS: dict[OperationState, tuple[ProgressStage, float]] = {
    OperationState.INITIALIZING: (ProgressStage.INITIALIZING, 0.0),
    OperationState.PREPARING_INPUT: (ProgressStage.PREPARING, 5.0),
    OperationState.TRYING_PROVIDERS: (ProgressStage.CONTACTING_PROVIDER, 10.0),
    OperationState.LOCAL_FALLBACK: (ProgressStage.FALLING_BACK, 50.0),
    OperationState.FINALIZING: (ProgressStage.FINALIZING, 90.0),
    OperationState.COMPLETE: (ProgressStage.COMPLETE, 100.0),
}

PROVIDER_BAND = (10.0, 50.0)
LOCAL_BAND = (50.0, 90.0)


class _ProgressReporter:
    """Emits the progress stream of one operation.
    
    Progress is clamped so it never regresses. Once closed nothing more is
    emitted, so events always precede the terminal result.
    """
    
    def __init__(
        self,
        operation_id: str,
        publisher: EventPublisher,
        monitor: ResourceMonitor,
        callback: ProgressCallback | None = None,
    ):
        self.operation_id = operation_id
        self.state = OperationState.INITIALIZING
        self._publisher = publisher
        self._monitor = monitor
        self._callback = callback
        self._last = 0.0
        self._closed = False
        self._lock = threading.Lock()
    
    def transition(self, state: OperationState, message: str) -> None:
        self.state = state
        stage, progress = TRANSITIONS[state]
        self.emit(stage, progress, message)
    
    def emit(
        self,
        stage: ProgressStage,
        progress: float,
        message: str,
        estimated_time_remaining: float | None = None,
    ) -> None:
        with self._lock:
            if self._closed:
                return
            progress = max(self._last, min(100.0, progress))
            self._last = progress
        
        event = ProgressEvent(
            stage=stage,
            progress=progress,
            message=message,
            operation_id=self.operation_id,
            estimated_time_remaining=estimated_time_remaining,
            warning=self._monitor.warning_message,
        )
        self._publisher.publish(event)
        if self._callback is not None:
            try:
                self._callback(event)
            except Exception:
                logger.exception(f"Progress callback failed for operation {self.operation_id}")
    
    def close(self) -> None:
        with self._lock:
            self._closed = True


class ProcessingOrchestrator:
    """Runs detect and remove operations: providers first, local fallback last.
    
    Collaborators are injected; use :meth:`create` for the default wiring.
    Operations run on a thread pool via :meth:`submit`, or on the calling
    thread via :meth:`run`.
    
    Example:
        with ProcessingOrchestrator.create() as orchestrator:
            handle = orchestrator.submit(OperationKind.REMOVAL, pixels, polygon)
            result = handle.result()
    """
    
    def __init__(
        self,
        coordinator: ProviderChainCoordinator,
        engine: RegionAnalysisEngine,
        registry: TaskRegistry,
        monitor: ResourceMonitor,
        config: OrchestratorConfig | None = None,
        publisher: EventPublisher | None = None,
    ):
        self.coordinator = coordinator
        self.engine = engine
        self.registry = registry
        self.monitor = monitor
        self.config = config or OrchestratorConfig()
        self.events = publisher or SimpleEventPublisher()
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()
    
    @classmethod
    def create(
        cls,
        config: OrchestratorConfig | None = None,
        catalog: ProviderCatalog | None = None,
        client: ProviderClient | None = None,
    ) -> ProcessingOrchestrator:
        """Wire up an orchestrator with the default collaborators."""
        from ...adapters.providers.http_client import RequestsProviderClient
        
        config = config or OrchestratorConfig()
        registry = TaskRegistry()
        coordinator = ProviderChainCoordinator(
            catalog if catalog is not None else ProviderCatalog.default(),
            client or RequestsProviderClient(config.base_url),
            config,
        )
        return cls(
            coordinator=coordinator,
            engine=RegionAnalysisEngine(config),
            registry=registry,
            monitor=ResourceMonitor(config, registry),
            config=config,
        )
    
    def _get_executor(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.config.max_workers,
                    thread_name_prefix="orchestrator",
                )
            return self._executor
    
    # Public API
    
    def submit(
        self,
        kind: OperationKind,
        pixels: PixelBuffer,
        selection: Selection,
        hint: DetectedObject | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> OperationHandle:
        """Start an operation on the worker pool.
        
        Returns:
            Handle for cancellation; ``handle.result()`` waits for the
            OperationResult
        """
        handle = self.registry.register()
        handle.future = self._get_executor().submit(
            self._execute, handle, kind, pixels, selection, hint, on_progress
        )
        return handle
    
    def run(
        self,
        kind: OperationKind,
        pixels: PixelBuffer,
        selection: Selection,
        hint: DetectedObject | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> OperationResult:
        """Run an operation on the calling thread."""
        handle = self.registry.register()
        return self._execute(handle, kind, pixels, selection, hint, on_progress)
    
    def detect(
        self,
        pixels: PixelBuffer,
        point: Point | tuple[int, int],
        on_progress: ProgressCallback | None = None,
    ) -> OperationResult:
        """Detect the object under a click point."""
        return self.run(OperationKind.DETECTION, pixels, point, on_progress=on_progress)
    
    def remove(
        self,
        pixels: PixelBuffer,
        mask: MaskPolygon | Sequence[Point | tuple[int, int]],
        hint: DetectedObject | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> OperationResult:
        """Remove the content inside a mask polygon."""
        return self.run(OperationKind.REMOVAL, pixels, mask, hint=hint, on_progress=on_progress)
    
    def cancel(self, handle: OperationHandle | str) -> bool:
        """Request cancellation. Unknown or finished operations are ignored."""
        operation_id = handle.id if isinstance(handle, OperationHandle) else handle
        return self.registry.cancel(operation_id)
    
    def subscribe(self, callback: ProgressCallback) -> None:
        """Receive progress events of every operation."""
        self.events.subscribe(callback)
    
    def available_providers(self, kind: OperationKind | None = None) -> list[ProviderDescriptor]:
        """Configured providers, in the order they are tried."""
        if kind is not None:
            return list(self.coordinator.providers_for(kind))
        return [p for k in OperationKind for p in self.coordinator.providers_for(k)]
    
    def memory_usage_mb(self) -> float | None:
        return self.monitor.sample_usage_mb()
    
    def shutdown(self, wait: bool = True) -> None:
        """Cancel running operations and stop the worker pool."""
        cancelled = self.registry.cancel_all()
        if cancelled:
            logger.info(f"Cancelled {cancelled} running operation(s) on shutdown")
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)
        self.monitor.stop()
        self.coordinator.client.close()
    
    def __enter__(self) -> ProcessingOrchestrator:
        self.monitor.start()
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()
    
    # State machine
    
    def _check_resources(self) -> None:
        self.monitor.sample_usage_mb()
        # One cached reading for both the check and the message
        usage = self.monitor.usage_mb
        limit = self.monitor.hard_limit_mb
        if usage is not None and usage > limit:
            raise ResourceExhaustedError(
                f"Memory usage {usage:.0f} MB exceeds limit {limit:.0f} MB",
                usage_mb=usage,
                limit_mb=limit,
            )
    
    def _validate(
        self,
        kind: OperationKind,
        pixels: PixelBuffer,
        selection: Selection,
    ) -> MaskPolygon | Point:
        if pixels.is_empty:
            raise InvalidSelectionError("Pixel buffer is empty", field="pixels")
        
        if kind == OperationKind.DETECTION:
            point = selection
            if isinstance(selection, tuple) and len(selection) == 2 and all(isinstance(v, int) for v in selection):
                point = Point(*selection)
            if not isinstance(point, Point):
                raise InvalidSelectionError("Detection needs a single click point", field="selection")
            if not point.within(pixels.width, pixels.height):
                raise InvalidSelectionError(
                    f"Point ({point.x}, {point.y}) is outside the {pixels.width}x{pixels.height} image",
                    field="selection",
                )
            return point
        
        if isinstance(selection, MaskPolygon):
            polygon = selection
        elif isinstance(selection, Point):
            raise InvalidSelectionError("Removal needs a mask polygon, not a point", field="selection")
        else:
            try:
                polygon = MaskPolygon.from_points(list(selection))
            except (TypeError, ValueError) as e:
                raise InvalidSelectionError(f"Invalid mask polygon: {e}", field="selection") from e
        
        if not polygon.rasterize(pixels.width, pixels.height).any():
            raise InvalidSelectionError("Mask polygon does not cover any pixel of the image", field="selection")
        return polygon
    
    def _run_local(
        self,
        kind: OperationKind,
        pixels: PixelBuffer,
        selection: MaskPolygon | Point,
        handle: OperationHandle,
        reporter: _ProgressReporter,
    ) -> PixelBuffer | list[DetectedObject]:
        started = time.monotonic()
        low, high = LOCAL_BAND
        
        def on_tile(done: int, total: int) -> None:
            elapsed = time.monotonic() - started
            eta = elapsed / done * (total - done) if done else None
            reporter.emit(
                ProgressStage.LOCAL_PROCESSING,
                low + (high - low) * done / max(total, 1),
                f"Processing locally: tile {done}/{total}",
                estimated_time_remaining=eta,
            )
        
        try:
            if kind == OperationKind.DETECTION:
                return self.engine.detect_region(pixels, selection, token=handle.token, on_tile=on_tile)
            return self.engine.fill_masked(pixels, selection, token=handle.token, on_tile=on_tile)
        except (OperationCancelledError, InvalidSelectionError):
            raise
        except (ValueError, MemoryError) as e:
            raise FallbackFailedError(f"Local {kind.value} failed: {e}") from e
    
    def _execute(
        self,
        handle: OperationHandle,
        kind: OperationKind,
        pixels: PixelBuffer,
        selection: Selection,
        hint: DetectedObject | None,
        on_progress: ProgressCallback | None,
    ) -> OperationResult:
        started = time.monotonic()
        reporter = _ProgressReporter(handle.id, self.events, self.monitor, on_progress)
        token = handle.token
        
        def elapsed() -> float:
            return time.monotonic() - started
        
        def fail(kind_: ErrorKind, error: Exception | str) -> OperationResult:
            reporter.state = (
                OperationState.CANCELLED if kind_ == ErrorKind.CANCELLED else OperationState.FAILED
            )
            message = error.message if isinstance(error, MediaOrchestratorError) else str(error)
            return OperationResult.failure(handle.id, kind_, message, elapsed_seconds=elapsed())
        
        try:
            reporter.transition(OperationState.INITIALIZING, f"Starting {kind.value}")
            self._check_resources()
            check_cancelled(token)
            
            reporter.transition(OperationState.PREPARING_INPUT, "Preparing input")
            target = self._validate(kind, pixels, selection)
            check_cancelled(token)
            
            reporter.transition(OperationState.TRYING_PROVIDERS, "Contacting processing services")
            low, high = PROVIDER_BAND
            
            def on_attempt(descriptor: ProviderDescriptor, attempt: int, max_attempts: int, index: int, count: int) -> None:
                fraction = (index + (attempt - 1) / max_attempts) / max(count, 1)
                reporter.emit(
                    ProgressStage.PROVIDER_PROCESSING,
                    low + (high - low) * fraction,
                    f"Processing with {descriptor.name} (attempt {attempt}/{max_attempts})",
                )
            
            outcome = self.coordinator.try_providers(kind, pixels, target, token, hint=hint, on_attempt=on_attempt)
            
            if outcome.status == ChainStatus.CANCELLED:
                raise OperationCancelledError(operation_id=handle.id)
            
            if outcome.succeeded:
                payload, source = outcome.payload, f"provider:{outcome.provider}"
            else:
                reporter.transition(OperationState.LOCAL_FALLBACK, "Services unavailable, processing locally")
                logger.info(f"Operation {handle.id}: falling back to local {kind.value}")
                payload, source = self._run_local(kind, pixels, target, handle, reporter), "local"
            check_cancelled(token)
            
            reporter.transition(OperationState.FINALIZING, "Finalizing")
            if kind == OperationKind.DETECTION:
                message = f"Detected {len(payload)} object(s)" if payload else "No detection"
                result = OperationResult.detection(handle.id, payload, source, elapsed(), message)
            else:
                result = OperationResult.removal(handle.id, payload, source, elapsed(), "Processing complete!")
            
            reporter.transition(OperationState.COMPLETE, result.message)
            logger.info(f"Operation {handle.id} completed via {source} in {result.elapsed_seconds:.2f}s")
            return result
        
        except OperationCancelledError as e:
            logger.info(f"Operation {handle.id} cancelled")
            return fail(ErrorKind.CANCELLED, e)
        except ResourceExhaustedError as e:
            logger.warning(f"Operation {handle.id} refused: {e}")
            return fail(ErrorKind.RESOURCE_EXHAUSTED, e)
        except InvalidSelectionError as e:
            logger.warning(f"Operation {handle.id} rejected: {e}")
            return fail(ErrorKind.INVALID_SELECTION, e)
        except FallbackFailedError as e:
            logger.error(f"Operation {handle.id} failed: {e}")
            return fail(ErrorKind.ALL_PROVIDERS_AND_FALLBACK_FAILED, e)
        except Exception as e:
            logger.exception(f"Operation {handle.id} failed unexpectedly")
            return fail(ErrorKind.ALL_PROVIDERS_AND_FALLBACK_FAILED, e)
        finally:
            reporter.close()
            logger.debug(f"Operation {handle.id} ended in state {reporter.state.value}")
            self.registry.mark_terminal(handle.id)
            self.registry.sweep()
