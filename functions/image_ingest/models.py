"""Data model for the image metadata pipeline.

BlobCreatedEvent comes in from Event Grid, ImageAnalysisResult comes back
from the vision API, ImageMetadataRecord goes out to the metadata store.
CallResult is what the two HTTP clients return instead of raising.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar
from urllib.parse import unquote, urlparse

T = TypeVar("T")

# Ontology namespace every image URI is minted under
IMAGE_URI_NAMESPACE = "http://www.semanticweb.org/ImagesOntology#"


@dataclass(frozen=True)
class BlobCreatedEvent:
    """Blob-created notification delivered by the storage platform."""

    url: str
    size: int = 0

    @property
    def blob_name(self) -> str:
        """Blob path inside its container (container segment stripped)."""
        path = unquote(urlparse(self.url).path).lstrip("/")
        _, _, name = path.partition("/")
        return name or path


@dataclass
class Caption:
    """One caption candidate from the vision API."""

    text: str
    confidence: float = 0.0


@dataclass
class ImageDescription:
    """Description block of an analysis response."""

    captions: list[Caption] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)


@dataclass
class ImageAnalysisResult:
    """Parsed response of the vision API's analyze call."""

    request_id: str
    description: ImageDescription

    @property
    def caption(self) -> str:
        """Text of the first (highest ranked) caption."""
        return self.description.captions[0].text

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ImageAnalysisResult":
        """Build from the decoded JSON response body.

        Raises:
            ValueError: If the body is not an object, has no description,
                has no captions, has a caption without text, or has tags
                that are not strings
        """
        if not isinstance(payload, dict):
            raise ValueError(f"Expected JSON object, got {type(payload).__name__}")

        description = payload.get("description")
        if not isinstance(description, dict):
            raise ValueError("Response has no 'description' object")

        captions = []
        for item in description.get("captions") or []:
            text = item.get("text") if isinstance(item, dict) else None
            if not isinstance(text, str):
                raise ValueError(f"Caption has no text: {item!r}")
            captions.append(
                Caption(text=text, confidence=float(item.get("confidence") or 0.0))
            )
        if not captions:
            raise ValueError("Response has no captions")

        tags = description.get("tags") or []
        if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
            raise ValueError(f"Tags must be a list of strings: {tags!r}")

        return cls(
            request_id=str(payload.get("requestId") or ""),
            description=ImageDescription(captions=captions, tags=tags),
        )


@dataclass
class ImageMetadataRecord:
    """Record posted to the metadata store for one image."""

    uri: str
    description: str
    content: str
    tags: list[str] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        event: BlobCreatedEvent,
        analysis: ImageAnalysisResult,
        base_name: str,
    ) -> "ImageMetadataRecord":
        """Combine the blob event and its analysis into a record.

        Args:
            event: Blob that was analyzed
            analysis: Vision API result for that blob
            base_name: Blob file name without extension
        """
        return cls(
            uri=IMAGE_URI_NAMESPACE + base_name,
            description=analysis.caption,
            content=event.url,
            tags=list(analysis.description.tags),
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire representation expected by the metadata store."""
        return {
            "Uri": self.uri,
            "Description": self.description,
            "Content": self.content,
            "Tags": self.tags,
        }


class ErrorKind(Enum):
    """Why an outbound call or pipeline step failed."""

    MISSING_INPUT = "missing_input"
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    DECODE = "decode"


@dataclass(frozen=True)
class CallError:
    """Tagged failure returned by a client call."""

    kind: ErrorKind
    message: str
    status_code: int | None = None

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.kind.value} ({self.status_code}): {self.message}"
        return f"{self.kind.value}: {self.message}"


@dataclass(frozen=True)
class CallResult(Generic[T]):
    """Success value or tagged error returned by the HTTP clients."""

    value: T | None = None
    error: CallError | None = None

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "CallResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: CallError) -> "CallResult[T]":
        return cls(error=error)
