"""Image metadata ingest for Azure Functions.

Exports:
- Config: Validated pipeline configuration
- Formats: Supported image format detection
- Models: Event, analysis and metadata record types
- Trigger: Event Grid payload and blob URL helpers
- Clients: Vision API and metadata store clients
- Pipeline: The per-event state machine
- Logging: Structured JSON logging
"""

from .config import ConfigurationError, PipelineConfig
from .formats import SUPPORTED_EXTENSIONS, ImageFormat, classify_extension, is_supported
from .logging_utils import StructuredLogger, structured_logger
from .metadata_store import MetadataStoreClient
from .models import (
    IMAGE_URI_NAMESPACE,
    BlobCreatedEvent,
    CallError,
    CallResult,
    Caption,
    ErrorKind,
    ImageAnalysisResult,
    ImageDescription,
    ImageMetadataRecord,
)
from .pipeline import ImagePipeline, PipelineError, PipelineOutcome, PipelineState
from .trigger import base_name_from_url, extension_from_url, parse_blob_created
from .vision import VisionClient

__all__ = [
    # Config
    "ConfigurationError",
    "PipelineConfig",
    # Formats
    "ImageFormat",
    "SUPPORTED_EXTENSIONS",
    "classify_extension",
    "is_supported",
    # Models
    "IMAGE_URI_NAMESPACE",
    "BlobCreatedEvent",
    "Caption",
    "ImageDescription",
    "ImageAnalysisResult",
    "ImageMetadataRecord",
    "ErrorKind",
    "CallError",
    "CallResult",
    # Trigger
    "parse_blob_created",
    "extension_from_url",
    "base_name_from_url",
    # Clients
    "VisionClient",
    "MetadataStoreClient",
    # Pipeline
    "ImagePipeline",
    "PipelineError",
    "PipelineOutcome",
    "PipelineState",
    # Logging
    "StructuredLogger",
    "structured_logger",
]
