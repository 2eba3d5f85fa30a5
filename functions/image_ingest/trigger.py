"""Event Grid trigger adapter.

Turns the ``Microsoft.Storage.BlobCreated`` event payload into a
BlobCreatedEvent and derives file names from the blob URL.
"""

from pathlib import PurePosixPath
from typing import Any
from urllib.parse import urlparse

from .models import BlobCreatedEvent


def parse_blob_created(data: dict[str, Any]) -> BlobCreatedEvent:
    """Extract the blob URL and size from an Event Grid event's data.

    Args:
        data: ``event.get_json()`` of a BlobCreated event

    Returns:
        BlobCreatedEvent

    Raises:
        ValueError: If the payload carries no blob URL
    """
    if not isinstance(data, dict):
        raise ValueError(f"Event data must be an object, got {type(data).__name__}")

    url = data.get("url")
    if not url:
        raise ValueError("Event data has no 'url'")

    return BlobCreatedEvent(url=str(url), size=int(data.get("contentLength") or 0))


def _split_file_name(url: str) -> tuple[str, str]:
    """Split the URL's file name at its last dot into (base name, extension).

    Unlike PurePosixPath.suffix, a leading dot counts: ".png" -> ("", ".png").
    A trailing dot gives no extension: "cat." -> ("cat", "").
    """
    name = PurePosixPath(urlparse(url).path).name
    head, dot, tail = name.rpartition(".")
    if not dot:
        return name, ""
    return head, f".{tail}" if tail else ""


def extension_from_url(url: str) -> str:
    """File extension of the blob a URL points at, including the dot.

    Query strings (e.g. SAS tokens) are ignored. Returns "" when the
    file name has no extension.
    """
    return _split_file_name(url)[1]


def base_name_from_url(url: str) -> str:
    """File name of the blob without its extension ("cat" for .../cat.png)."""
    return _split_file_name(url)[0]
