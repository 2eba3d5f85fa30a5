"""Metadata store client.

Posts image records to the SPARQL endpoint's REST facade, which turns them
into triples of the images ontology.
"""

import requests

from .http_client import post_json
from .models import CallResult, ImageMetadataRecord


class MetadataStoreClient:
    """Client for the image metadata store."""

    def __init__(
        self,
        endpoint: str,
        session: requests.Session,
        timeout: float | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.session = session
        self.timeout = timeout

    @property
    def create_url(self) -> str:
        return f"{self.endpoint}/images/create"

    def create_image(self, record: ImageMetadataRecord) -> CallResult[None]:
        """Store one image record.

        Returns:
            Empty success, or a TRANSPORT or HTTP_STATUS error
        """
        sent = post_json(
            self.session,
            "publish",
            self.create_url,
            record.to_dict(),
            timeout=self.timeout,
        )
        if not sent.is_ok:
            return CallResult.failure(sent.error)
        return CallResult.success()
