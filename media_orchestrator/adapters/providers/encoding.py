"""Request encoding - turns pixels and a selection into a provider request."""

from __future__ import annotations

import json

from ...application.ports.provider_client import ProviderRequest
from ...config import RequestFormat
from ...domain.entities.detection import DetectedObject
from ...domain.entities.pixel_buffer import PixelBuffer
from ...domain.value_objects.config import ProviderDescriptor
from ...domain.value_objects.geometry import MaskPolygon, Point
from ...exceptions import ConfigurationError


def build_request(
    descriptor: ProviderDescriptor,
    pixels: PixelBuffer,
    selection: MaskPolygon | Point | None,
    hint: DetectedObject | None = None,
) -> ProviderRequest:
    """Encode one request in the provider's declared format.
    
    Raises:
        ConfigurationError: If the provider accepts no encodable image format
            or an inpainting provider is called without a hint
    """
    mime = descriptor.encoding
    if mime is None:
        raise ConfigurationError(
            f"{descriptor.name} accepts none of the encodable formats: {descriptor.supported_formats}",
            config_key="supported_formats",
        )
    image = pixels.encode(mime)
    fields: dict[str, str] = {}
    
    if descriptor.request_format == RequestFormat.DETECTION:
        if descriptor.model_id:
            fields["model_id"] = descriptor.model_id
        if descriptor.model_type:
            fields["model_type"] = descriptor.model_type
        if isinstance(selection, Point):
            fields["click_point"] = json.dumps(selection.to_dict())
    
    elif descriptor.request_format == RequestFormat.MASK_POINTS:
        if isinstance(selection, MaskPolygon):
            fields["mask_points"] = selection.to_json()
        fields["model"] = descriptor.name
    
    elif descriptor.request_format == RequestFormat.INPAINTING:
        if hint is None:
            raise ConfigurationError(f"{descriptor.name} needs a selected object", config_key="hint")
        fields["object_data"] = json.dumps(hint.to_dict())
        fields["task"] = "inpainting"
    
    return ProviderRequest(image=image, image_mime=mime, fields=fields)
