"""Vision API client.

Asks the Computer Vision ``analyze`` endpoint for a caption and tags of an
image that is reachable by URL.
"""

import requests

from .http_client import post_json
from .logging_utils import structured_logger
from .models import CallError, CallResult, ErrorKind, ImageAnalysisResult

SUBSCRIPTION_KEY_HEADER = "Ocp-Apim-Subscription-Key"
ANALYZE_PARAMS = {"visualFeatures": "Description", "language": "en"}


class VisionClient:
    """Client for the image analysis API."""

    def __init__(
        self,
        endpoint: str,
        subscription_key: str,
        session: requests.Session,
        timeout: float | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.subscription_key = subscription_key
        self.session = session
        self.timeout = timeout

    @property
    def analyze_url(self) -> str:
        return f"{self.endpoint}/analyze"

    def analyze(self, image_url: str) -> CallResult[ImageAnalysisResult]:
        """Request a description of the image at ``image_url``.

        Args:
            image_url: Publicly readable URL of the image

        Returns:
            CallResult with the parsed ImageAnalysisResult, or a TRANSPORT,
            HTTP_STATUS or DECODE error
        """
        sent = post_json(
            self.session,
            "analyze",
            self.analyze_url,
            {"url": image_url},
            headers={SUBSCRIPTION_KEY_HEADER: self.subscription_key},
            params=ANALYZE_PARAMS,
            timeout=self.timeout,
        )
        if not sent.is_ok:
            return CallResult.failure(sent.error)

        try:
            result = ImageAnalysisResult.from_dict(sent.value.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            # requests' JSONDecodeError is a ValueError
            return CallResult.failure(
                CallError(ErrorKind.DECODE, f"Invalid analysis response: {e}")
            )

        structured_logger.info(
            "analyze",
            "Analysis response parsed",
            request_id=result.request_id,
            caption_count=len(result.description.captions),
            tag_count=len(result.description.tags),
        )
        return CallResult.success(result)
