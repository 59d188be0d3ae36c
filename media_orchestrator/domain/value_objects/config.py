"""Configuration value objects with validation."""

from __future__ import annotations

import json
from pathlib import Path
from urllib.parse import urljoin

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ...config import (
    DEFAULT_BASE_URL,
    DEFAULT_PROVIDERS,
    ENCODABLE_FORMATS,
    ENGINE_DEFAULTS,
    OperationKind,
    RequestFormat,
    ResponseFormat,
)
from ...exceptions import ConfigurationError


class OrchestratorConfig(BaseModel):
    """Tunables for the orchestrator, engine and resource monitor."""
    
    model_config = {"validate_assignment": True}
    
    # Providers
    base_url: str = DEFAULT_BASE_URL
    backoff_unit_seconds: float = Field(default=ENGINE_DEFAULTS.backoff_unit_seconds, ge=0.0)
    
    # Local fallback
    tile_size: int = Field(default=ENGINE_DEFAULTS.tile_size, ge=1, le=4096)
    tile_yield_seconds: float = Field(default=0.0, ge=0.0)
    similarity_threshold: int = Field(default=ENGINE_DEFAULTS.similarity_threshold, ge=0, le=765)
    region_cap: int = Field(default=ENGINE_DEFAULTS.region_cap, ge=1)
    min_region_pixels: int = Field(default=ENGINE_DEFAULTS.min_region_pixels, ge=0)
    fallback_confidence: float = Field(default=ENGINE_DEFAULTS.fallback_confidence, ge=0.0, le=1.0)
    fill_radius: int = Field(default=ENGINE_DEFAULTS.fill_radius, ge=1, le=64)
    
    # Memory
    hard_limit_mb: float = Field(default=ENGINE_DEFAULTS.hard_limit_mb, gt=0)
    soft_limit_ratio: float = Field(default=ENGINE_DEFAULTS.soft_limit_ratio, gt=0.0, le=1.0)
    sample_interval_seconds: float = Field(default=ENGINE_DEFAULTS.sample_interval_seconds, gt=0)
    
    # Concurrency
    max_workers: int = Field(default=4, ge=1, le=64)
    
    @property
    def soft_limit_mb(self) -> float:
        return self.hard_limit_mb * self.soft_limit_ratio
    
    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {v!r}")
        return v.rstrip("/") + "/"


class ProviderDescriptor(BaseModel):
    """One remote inference provider. Configuration data, never mutated."""
    
    model_config = {"frozen": True}
    
    name: str = Field(min_length=1)
    endpoint: str = Field(min_length=1)
    kind: OperationKind
    timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=1, ge=1, le=10)
    supported_formats: tuple[str, ...] = ("image/png", "image/jpeg", "image/webp")
    
    model_id: str | None = None
    model_type: str | None = None
    request_format: RequestFormat = RequestFormat.MASK_POINTS
    response_format: ResponseFormat = ResponseFormat.IMAGE
    api_key_env: str | None = None  # Credentials reference, resolved at call time
    
    @model_validator(mode="after")
    def check_kind_consistency(self) -> ProviderDescriptor:
        """Detection providers return regions, removal providers return images."""
        returns_image = self.response_format == ResponseFormat.IMAGE
        if self.kind == OperationKind.DETECTION and returns_image:
            raise ValueError(f"Detection provider {self.name!r} cannot use an image response")
        if self.kind == OperationKind.REMOVAL and not returns_image:
            raise ValueError(f"Removal provider {self.name!r} must use an image response")
        return self
    
    @property
    def encoding(self) -> str | None:
        """First supported MIME type we can encode, None if there is none."""
        for mime in self.supported_formats:
            if mime in ENCODABLE_FORMATS:
                return mime
        return None
    
    @property
    def requires_hint(self) -> bool:
        """Inpainting providers need the selected object to work on."""
        return self.request_format == RequestFormat.INPAINTING
    
    def url(self, base_url: str) -> str:
        """Absolute URL; relative endpoints are joined to base_url."""
        if self.endpoint.startswith(("http://", "https://")):
            return self.endpoint
        return urljoin(base_url, self.endpoint.lstrip("/"))


class ProviderCatalog(BaseModel):
    """Ordered provider chains per operation kind."""
    
    model_config = {"frozen": True}
    
    detection: tuple[ProviderDescriptor, ...] = ()
    removal: tuple[ProviderDescriptor, ...] = ()
    
    @model_validator(mode="after")
    def check_chain_kinds(self) -> ProviderCatalog:
        for kind, chain in ((OperationKind.DETECTION, self.detection), (OperationKind.REMOVAL, self.removal)):
            for provider in chain:
                if provider.kind != kind:
                    raise ValueError(f"Provider {provider.name!r} listed under {kind.value} has kind {provider.kind.value}")
        return self
    
    def for_kind(self, kind: OperationKind) -> tuple[ProviderDescriptor, ...]:
        """Providers for an operation kind, in the order they are tried."""
        return self.detection if kind == OperationKind.DETECTION else self.removal
    
    @classmethod
    def default(cls) -> ProviderCatalog:
        """Built-in chains."""
        return cls.from_dict({kind.value: entries for kind, entries in DEFAULT_PROVIDERS.items()})
    
    @classmethod
    def local_only(cls) -> ProviderCatalog:
        """Empty chains: every operation goes straight to local fallback."""
        return cls()
    
    @classmethod
    def from_dict(cls, data: dict) -> ProviderCatalog:
        """Build from ``{"detection": [...], "removal": [...]}``.
        
        The ``kind`` of each entry is filled in from the list it appears in.
        """
        chains = {}
        for kind in OperationKind:
            entries = data.get(kind.value, [])
            chains[kind.value] = [{"kind": kind, **entry} for entry in entries]
        return cls(**chains)
    
    @classmethod
    def from_file(cls, path: Path | str) -> ProviderCatalog:
        """Load a catalog from a JSON file.
        
        Raises:
            ConfigurationError: If the file is missing, not JSON or invalid
        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read provider catalog {path}: {e}", config_key="providers") from e
        
        try:
            return cls.from_dict(data)
        except (ValidationError, AttributeError, TypeError) as e:
            raise ConfigurationError(f"Invalid provider catalog {path}: {e}", config_key="providers") from e


__all__ = [
    'OrchestratorConfig',
    'ProviderDescriptor',
    'ProviderCatalog',
    'OperationKind',
    'RequestFormat',
    'ResponseFormat',
]
