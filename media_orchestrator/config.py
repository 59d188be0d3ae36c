"""Configuration and constants for the Media Processing Orchestrator."""

from dataclasses import dataclass
from enum import Enum


class OperationKind(str, Enum):
    """Kinds of operation the orchestrator accepts."""
    DETECTION = "detection"
    REMOVAL = "removal"


class RequestFormat(str, Enum):
    """How a provider expects its request body to be encoded."""
    DETECTION = "detection"      # image + model id + optional click point
    MASK_POINTS = "mask_points"  # legacy removal: image + JSON point array
    INPAINTING = "inpainting"    # image + JSON of the selected object


class ResponseFormat(str, Enum):
    """Payload shapes the coordinator knows how to normalize."""
    PREDICTIONS = "predictions"
    SEGMENTS = "segments"
    MASKS = "masks"
    IMAGE = "image"


@dataclass(frozen=True)
class EngineDefaults:
    """Defaults for the local fallback and resource limits."""
    tile_size: int = 100
    
    # Region growing
    similarity_threshold: int = 50  # Sum of |dR|+|dG|+|dB|
    region_cap: int = 10_000
    min_region_pixels: int = 100
    fallback_confidence: float = 0.7
    fallback_label: str = "Detected Region"
    
    # Content-aware fill
    fill_radius: int = 5
    
    # Memory
    hard_limit_mb: float = 512.0
    soft_limit_ratio: float = 0.8
    sample_interval_seconds: float = 5.0
    
    # Retry backoff: sleep 2**attempt * unit seconds between attempts
    backoff_unit_seconds: float = 1.0


ENGINE_DEFAULTS = EngineDefaults()


# Display colours assigned to detected objects by index
DETECTION_COLORS: tuple[str, ...] = (
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#96CEB4", "#FFEAA7", "#DDA0DD", "#98D8C8",
)

# MIME types we can encode with Pillow, in order of preference
ENCODABLE_FORMATS: dict[str, str] = {
    "image/png": "PNG",
    "image/jpeg": "JPEG",
    "image/webp": "WEBP",
}


# Built-in provider chains. Order is significant: providers are tried first to last.
DEFAULT_PROVIDERS: dict[OperationKind, list[dict]] = {
    OperationKind.DETECTION: [
        {
            "name": "Segment Anything Model",
            "endpoint": "/api/ai/huggingface/sam",
            "model_id": "facebook/sam-vit-base",
            "model_type": "sam",
            "timeout": 30.0,
            "max_retries": 1,
            "request_format": RequestFormat.DETECTION,
            "response_format": ResponseFormat.MASKS,
            "api_key_env": "HUGGINGFACE_API_KEY",
        },
        {
            "name": "Mask2Former",
            "endpoint": "/api/ai/huggingface/mask2former",
            "model_id": "facebook/mask2former-swin-tiny-ade-semantic",
            "model_type": "mask2former",
            "timeout": 30.0,
            "max_retries": 1,
            "request_format": RequestFormat.DETECTION,
            "response_format": ResponseFormat.SEGMENTS,
            "api_key_env": "HUGGINGFACE_API_KEY",
        },
        {
            "name": "DETR Panoptic",
            "endpoint": "/api/ai/huggingface/detr-panoptic",
            "model_id": "facebook/detr-resnet-50-panoptic",
            "model_type": "detr",
            "timeout": 30.0,
            "max_retries": 1,
            "request_format": RequestFormat.DETECTION,
            "response_format": ResponseFormat.PREDICTIONS,
            "api_key_env": "HUGGINGFACE_API_KEY",
        },
    ],
    OperationKind.REMOVAL: [
        {
            "name": "Hugging Face Inpainting",
            "endpoint": "/api/ai/huggingface/inpainting",
            "model_type": "inpainting",
            "timeout": 60.0,
            "max_retries": 1,
            "request_format": RequestFormat.INPAINTING,
            "response_format": ResponseFormat.IMAGE,
            "api_key_env": "HUGGINGFACE_API_KEY",
        },
        {
            "name": "RemBG Background Removal",
            "endpoint": "/api/ai/rembg",
            "timeout": 25.0,
            "max_retries": 3,
            "supported_formats": ["image/jpeg", "image/png", "image/webp"],
            "request_format": RequestFormat.MASK_POINTS,
            "response_format": ResponseFormat.IMAGE,
            "api_key_env": "AI_SERVICE_API_KEY",
        },
        {
            "name": "U2Net Background Removal",
            "endpoint": "/api/ai/u2net",
            "timeout": 30.0,
            "max_retries": 3,
            "supported_formats": ["image/jpeg", "image/png", "image/webp"],
            "request_format": RequestFormat.MASK_POINTS,
            "response_format": ResponseFormat.IMAGE,
            "api_key_env": "AI_SERVICE_API_KEY",
        },
        {
            "name": "DeepLab Semantic Segmentation",
            "endpoint": "/api/ai/deeplab",
            "timeout": 45.0,
            "max_retries": 2,
            "supported_formats": ["image/jpeg", "image/png"],
            "request_format": RequestFormat.MASK_POINTS,
            "response_format": ResponseFormat.IMAGE,
            "api_key_env": "AI_SERVICE_API_KEY",
        },
    ],
}

DEFAULT_BASE_URL = "http://localhost:8000"
API_KEY_HEADER = "X-API-Key"


# Environment
ENV_FILE = ".env"
KEYRING_SERVICE = "media_orchestrator"


# Logging
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
