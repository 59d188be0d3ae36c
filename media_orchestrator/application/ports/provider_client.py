"""Provider Client port - one HTTP-style call to a remote provider."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from ...domain.value_objects.config import ProviderDescriptor


@dataclass(frozen=True, slots=True)
class ProviderRequest:
    """Encoded request body for one provider call."""
    image: bytes
    image_mime: str
    fields: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ProviderResponse:
    """Raw successful response from a provider."""
    status_code: int
    content: bytes
    content_type: str = ""
    
    def json(self) -> Any:
        import json
        return json.loads(self.content.decode("utf-8"))


@runtime_checkable
class ProviderClient(Protocol):
    """Port for sending requests to remote inference providers.
    
    Implementations must honour ``descriptor.timeout`` and raise
    ``ProviderTransportError`` for network failures and non-2xx statuses.
    """
    
    def send(self, descriptor: ProviderDescriptor, request: ProviderRequest) -> ProviderResponse:
        """Send one request and return the raw response."""
        ...
    
    def close(self) -> None:
        """Release connections."""
        ...
