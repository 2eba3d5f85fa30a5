"""Supported image format detection.

The pipeline only classifies the upload; nothing is decoded or re-encoded.
"""

from enum import Enum


class ImageFormat(Enum):
    """Image formats the pipeline accepts."""

    PNG = "png"
    JPEG = "jpeg"
    GIF = "gif"


# Extension (lower case, no dot) -> format
SUPPORTED_EXTENSIONS: dict[str, ImageFormat] = {
    "png": ImageFormat.PNG,
    "jpg": ImageFormat.JPEG,
    "jpeg": ImageFormat.JPEG,
    "gif": ImageFormat.GIF,
}


def classify_extension(extension: str | None) -> ImageFormat | None:
    """Map a file extension to a supported image format.

    Args:
        extension: Extension with or without the leading dot ("png", ".JPG")

    Returns:
        The matching ImageFormat, or None if the extension is unsupported
    """
    if not extension:
        return None
    return SUPPORTED_EXTENSIONS.get(extension.lstrip(".").lower())


def is_supported(extension: str | None) -> bool:
    """True if the extension names a supported image format."""
    return classify_extension(extension) is not None
