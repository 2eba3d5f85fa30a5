"""Image metadata pipeline.

One run per blob-created event:

    START -> INPUT_CHECKED -> FORMAT_CHECKED -> ANALYZED -> PUBLISHED -> DONE

Any failure moves the run to ABORTED. An unsupported file extension is a
deliberate skip and ends in DONE without calling either service. Nothing is
retried here; the caller reports an aborted run to the platform, which owns
redelivery.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import requests

from .config import PipelineConfig
from .formats import ImageFormat, classify_extension
from .http_client import create_session
from .logging_utils import structured_logger
from .metadata_store import MetadataStoreClient
from .models import (
    BlobCreatedEvent,
    CallError,
    ErrorKind,
    ImageAnalysisResult,
    ImageMetadataRecord,
)
from .trigger import base_name_from_url, extension_from_url
from .vision import VisionClient


class PipelineState(Enum):
    """States of a single pipeline run."""

    START = "START"
    INPUT_CHECKED = "INPUT_CHECKED"
    FORMAT_CHECKED = "FORMAT_CHECKED"
    ANALYZED = "ANALYZED"
    PUBLISHED = "PUBLISHED"
    DONE = "DONE"
    ABORTED = "ABORTED"


class PipelineError(Exception):
    """Raised to report an aborted run to the hosting platform."""

    def __init__(self, error: CallError, state: PipelineState):
        super().__init__(f"Pipeline aborted after {state.value}: {error}")
        self.error = error
        self.state = state


@dataclass
class PipelineOutcome:
    """Result of one pipeline run."""

    event: BlobCreatedEvent
    state: PipelineState = PipelineState.START
    history: list[PipelineState] = field(default_factory=lambda: [PipelineState.START])
    image_format: ImageFormat | None = None
    analysis: ImageAnalysisResult | None = None
    record: ImageMetadataRecord | None = None
    error: CallError | None = None
    skipped: bool = False

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.DONE

    @property
    def last_completed_state(self) -> PipelineState:
        """Last state reached before DONE or ABORTED."""
        for state in reversed(self.history):
            if state not in (PipelineState.DONE, PipelineState.ABORTED):
                return state
        return PipelineState.START

    def advance(self, state: PipelineState) -> None:
        self.state = state
        self.history.append(state)

    def abort(self, error: CallError) -> "PipelineOutcome":
        self.error = error
        self.advance(PipelineState.ABORTED)
        return self

    def raise_for_failure(self) -> None:
        """Raise PipelineError if the run was aborted."""
        if self.state is PipelineState.ABORTED:
            raise PipelineError(self.error, self.last_completed_state)


def _stream_length(stream: Any) -> int | None:
    length = getattr(stream, "length", None)
    if length is None:
        try:
            length = len(stream)
        except TypeError:
            return None
    return length


class ImagePipeline:
    """Analyzes uploaded images and publishes their metadata.

    The pipeline owns a single HTTP session shared by both clients. Pass
    ``session`` to supply your own (e.g. a fake transport in tests); a
    supplied session is not closed by ``close()``.
    """

    def __init__(
        self,
        config: PipelineConfig,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config
        self._owns_session = session is None
        self.session = session if session is not None else create_session()
        self.vision = VisionClient(
            config.vision_endpoint,
            config.subscription_key,
            self.session,
            timeout=config.http_timeout,
        )
        self.metadata_store = MetadataStoreClient(
            config.sparql_endpoint,
            self.session,
            timeout=config.http_timeout,
        )

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "ImagePipeline":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def run(self, event: BlobCreatedEvent, stream: Any) -> PipelineOutcome:
        """Process one blob-created event.

        Args:
            event: The blob that was created
            stream: Readable blob content, or None if the binding found
                nothing to read

        Returns:
            PipelineOutcome in state DONE or ABORTED
        """
        token = structured_logger.set_context(blob_url=event.url)
        try:
            outcome = self._run(event, stream)
        finally:
            structured_logger.clear_context(token)
        return outcome

    def _run(self, event: BlobCreatedEvent, stream: Any) -> PipelineOutcome:
        outcome = PipelineOutcome(event=event)

        # === INPUT ===
        if stream is None:
            structured_logger.error("input", "No input stream")
            return outcome.abort(
                CallError(ErrorKind.MISSING_INPUT, f"No input stream for {event.url}")
            )

        length = _stream_length(stream)
        structured_logger.info(
            "input",
            "Processing blob",
            blob_name=event.blob_name,
            size=length if length is not None else event.size,
        )
        outcome.advance(PipelineState.INPUT_CHECKED)

        # === FORMAT ===
        extension = extension_from_url(event.url)
        image_format = classify_extension(extension)
        if image_format is None:
            structured_logger.warning(
                "format",
                "Unsupported image format, skipping",
                extension=extension,
            )
            outcome.skipped = True
            outcome.advance(PipelineState.DONE)
            return outcome

        outcome.image_format = image_format
        structured_logger.info("format", "Supported image format", image_format=image_format.value)
        outcome.advance(PipelineState.FORMAT_CHECKED)

        # === ANALYZE ===
        structured_logger.info("analyze", "Analyzing uploaded image")
        analyzed = self.vision.analyze(event.url)
        if not analyzed.is_ok:
            structured_logger.error("analyze", "Image analysis failed", error=str(analyzed.error))
            return outcome.abort(analyzed.error)

        outcome.analysis = analyzed.value
        structured_logger.info(
            "analyze",
            "Image analysis done",
            request_id=analyzed.value.request_id,
        )
        outcome.advance(PipelineState.ANALYZED)

        # === PUBLISH ===
        record = ImageMetadataRecord.build(event, analyzed.value, base_name_from_url(event.url))
        outcome.record = record
        structured_logger.info("publish", "Adding image to metadata store", uri=record.uri)
        published = self.metadata_store.create_image(record)
        if not published.is_ok:
            structured_logger.error("publish", "Publishing metadata failed", error=str(published.error))
            return outcome.abort(published.error)

        outcome.advance(PipelineState.PUBLISHED)
        structured_logger.info("publish", "Image added to metadata store", uri=record.uri)

        outcome.advance(PipelineState.DONE)
        structured_logger.info("complete", "Pipeline complete", tag_count=len(record.tags))
        return outcome
