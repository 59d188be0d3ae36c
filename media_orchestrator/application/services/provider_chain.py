"""Provider Chain Coordinator - tries remote providers in order with retries."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Mapping

from ...adapters.providers.encoding import build_request
from ...config import OperationKind, ResponseFormat
from ...domain.entities.detection import DetectedObject
from ...domain.entities.pixel_buffer import PixelBuffer
from ...domain.value_objects.config import OrchestratorConfig, ProviderCatalog, ProviderDescriptor
from ...domain.value_objects.geometry import MaskPolygon, Point
from ...exceptions import ProviderError, ProviderResponseMalformedError, ProviderTransportError
from ...infrastructure.normalizer_registry import NormalizerRegistry
from ..ports.provider_client import ProviderClient
from .task_registry import CancellationToken

logger = logging.getLogger(__name__)


class ChainStatus(str, Enum):
    SUCCESS = "success"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class AttemptRecord:
    """One provider contact (or skip) and how it ended."""
    provider: str
    attempt: int  # 1-based; 0 for a skipped provider
    outcome: str  # "success", "empty", "skipped" or an error code
    detail: str = ""


@dataclass
class ChainOutcome:
    """Result of walking a provider chain."""
    status: ChainStatus
    payload: PixelBuffer | list[DetectedObject] | None = None
    provider: str | None = None
    attempts: list[AttemptRecord] = field(default_factory=list)
    
    @property
    def succeeded(self) -> bool:
        return self.status == ChainStatus.SUCCESS


# Called before each attempt with (provider, attempt, max_attempts, index, chain_length)
AttemptCallback = Callable[[ProviderDescriptor, int, int, int, int], None]


class ProviderChainCoordinator:
    """Walks the provider chain for one operation kind.
    
    Providers are tried in catalog order. Each gets up to ``max_retries``
    attempts with exponential backoff in between. The first provider to
    return a usable payload wins. Cancellation is honoured before every
    provider, attempt and backoff, and after every response.
    
    Example:
        coordinator = ProviderChainCoordinator(catalog, client, config)
        outcome = coordinator.try_providers(OperationKind.REMOVAL, pixels, polygon, token)
        if outcome.succeeded:
            ...
    """
    
    def __init__(
        self,
        catalog: ProviderCatalog,
        client: ProviderClient,
        config: OrchestratorConfig | None = None,
        normalizers: Mapping[ResponseFormat, Callable] | None = None,
    ):
        self.catalog = catalog
        self.client = client
        self.config = config or OrchestratorConfig()
        self._normalizers = normalizers
    
    def _normalizer(self, fmt: ResponseFormat) -> Callable:
        if self._normalizers is not None and fmt in self._normalizers:
            return self._normalizers[fmt]
        return NormalizerRegistry.get(fmt)
    
    def providers_for(self, kind: OperationKind) -> tuple[ProviderDescriptor, ...]:
        return self.catalog.for_kind(kind)
    
    def _skip_reason(self, descriptor: ProviderDescriptor, hint: DetectedObject | None) -> str | None:
        if descriptor.requires_hint and hint is None:
            return "needs a selected object"
        if descriptor.encoding is None:
            return f"no encodable format in {list(descriptor.supported_formats)}"
        return None
    
    def _attempt(
        self,
        descriptor: ProviderDescriptor,
        pixels: PixelBuffer,
        selection: MaskPolygon | Point | None,
        hint: DetectedObject | None,
    ) -> PixelBuffer | list[DetectedObject]:
        """Contact one provider once.
        
        Any failure of this attempt surfaces as a ProviderError, so the
        chain can retry it and move on.
        """
        try:
            request = build_request(descriptor, pixels, selection, hint)
            response = self.client.send(descriptor, request)
        except ProviderError:
            raise
        except Exception as e:
            logger.debug(f"Request to {descriptor.name} failed", exc_info=True)
            raise ProviderTransportError(
                f"Request failed: {type(e).__name__}: {e}", provider=descriptor.name
            ) from e
        
        try:
            return self._normalizer(descriptor.response_format)(response, descriptor, pixels.size)
        except ProviderError:
            raise
        except Exception as e:
            logger.debug(f"Normalizing {descriptor.name} response failed", exc_info=True)
            raise ProviderResponseMalformedError(
                f"Unusable response: {type(e).__name__}: {e}", provider=descriptor.name
            ) from e
    
    def try_providers(
        self,
        kind: OperationKind,
        pixels: PixelBuffer,
        selection: MaskPolygon | Point | None,
        token: CancellationToken,
        hint: DetectedObject | None = None,
        on_attempt: AttemptCallback | None = None,
    ) -> ChainOutcome:
        """Try every provider for ``kind`` until one succeeds.
        
        Args:
            kind: Detection or removal
            pixels: Input buffer (never mutated)
            selection: Mask polygon (removal) or click point (detection)
            token: Cancellation token of the operation
            hint: Detected object for inpainting providers
            on_attempt: Progress hook called before each attempt
        
        Returns:
            ChainOutcome with SUCCESS, EXHAUSTED or CANCELLED status
        """
        chain = self.providers_for(kind)
        attempts: list[AttemptRecord] = []
        
        def cancelled() -> ChainOutcome:
            logger.info(f"{kind.value} chain cancelled after {len(attempts)} attempt(s)")
            return ChainOutcome(ChainStatus.CANCELLED, attempts=attempts)
        
        for index, descriptor in enumerate(chain):
            if token.is_cancelled:
                return cancelled()
            
            reason = self._skip_reason(descriptor, hint)
            if reason:
                logger.debug(f"Skipping {descriptor.name}: {reason}")
                attempts.append(AttemptRecord(descriptor.name, 0, "skipped", reason))
                continue
            
            max_attempts = descriptor.max_retries
            for attempt in range(1, max_attempts + 1):
                if token.is_cancelled:
                    return cancelled()
                if on_attempt is not None:
                    on_attempt(descriptor, attempt, max_attempts, index, len(chain))
                
                logger.debug(f"Contacting {descriptor.name} (attempt {attempt}/{max_attempts})")
                try:
                    payload = self._attempt(descriptor, pixels, selection, hint)
                except ProviderError as e:
                    logger.warning(f"{descriptor.name} attempt {attempt}/{max_attempts} failed: {e}")
                    attempts.append(AttemptRecord(descriptor.name, attempt, e.error_code or "error", e.message))
                    if token.is_cancelled:
                        return cancelled()
                    if attempt < max_attempts:
                        delay = (2 ** attempt) * self.config.backoff_unit_seconds
                        if token.wait(delay):
                            return cancelled()
                    continue
                
                if token.is_cancelled:
                    return cancelled()
                
                if isinstance(payload, list) and not payload:
                    logger.info(f"{descriptor.name} found no objects, trying next provider")
                    attempts.append(AttemptRecord(descriptor.name, attempt, "empty"))
                    break
                
                attempts.append(AttemptRecord(descriptor.name, attempt, "success"))
                logger.info(f"{kind.value} handled by {descriptor.name}")
                return ChainOutcome(ChainStatus.SUCCESS, payload=payload, provider=descriptor.name, attempts=attempts)
        
        logger.info(f"All {len(chain)} {kind.value} provider(s) exhausted")
        return ChainOutcome(ChainStatus.EXHAUSTED, attempts=attempts)
