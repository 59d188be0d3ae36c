"""HTTP provider client - implements ProviderClient with requests."""

from __future__ import annotations

import logging
from typing import Callable, Optional

import requests

from ...application.ports.provider_client import ProviderRequest, ProviderResponse
from ...config import API_KEY_HEADER, DEFAULT_BASE_URL
from ...domain.value_objects.config import ProviderDescriptor
from ...exceptions import ProviderTransportError
from ...utils.env import load_api_key

logger = logging.getLogger(__name__)


class RequestsProviderClient:
    """Posts multipart requests to providers over a shared session."""
    
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        session: requests.Session | None = None,
        api_key_resolver: Callable[[str], Optional[str]] = load_api_key,
    ):
        self.base_url = base_url
        self._session = session or requests.Session()
        self._resolve_key = api_key_resolver
    
    def _headers(self, descriptor: ProviderDescriptor) -> dict[str, str]:
        key = self._resolve_key(descriptor.api_key_env) if descriptor.api_key_env else None
        return {API_KEY_HEADER: key or ""}
    
    def send(self, descriptor: ProviderDescriptor, request: ProviderRequest) -> ProviderResponse:
        """POST one request with the provider's timeout.
        
        Raises:
            ProviderTransportError: On timeout, connection failure or non-2xx status
        """
        url = descriptor.url(self.base_url)
        extension = request.image_mime.split("/")[-1]
        files = {"image": (f"image.{extension}", request.image, request.image_mime)}
        
        try:
            response = self._session.post(
                url,
                files=files,
                data=request.fields,
                headers=self._headers(descriptor),
                timeout=descriptor.timeout,
            )
        except requests.Timeout as e:
            raise ProviderTransportError(
                f"Timed out after {descriptor.timeout}s: {url}", provider=descriptor.name
            ) from e
        except requests.RequestException as e:
            raise ProviderTransportError(f"Request to {url} failed: {e}", provider=descriptor.name) from e
        
        if not response.ok:
            raise ProviderTransportError(
                f"HTTP {response.status_code}: {response.reason}",
                provider=descriptor.name,
                status_code=response.status_code,
            )
        
        return ProviderResponse(
            status_code=response.status_code,
            content=response.content,
            content_type=response.headers.get("Content-Type", ""),
        )
    
    def close(self) -> None:
        self._session.close()
    
    def __enter__(self) -> RequestsProviderClient:
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
