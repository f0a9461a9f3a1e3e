"""Shared constants for the petal-pages editor."""

from __future__ import annotations

# Content types for image blobs keyed by lower-case file extension
IMAGE_CONTENT_TYPES: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
}

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Blob names used when publishing the production site
PUBLISHED_DATA_BLOB = "data.json"
PUBLISHED_DOCUMENT_BLOB = "index.html"


def image_extension(filename: str) -> str | None:
    """Return the lower-case image extension of ``filename`` or ``None``."""
    _, dot, ext = filename.rpartition(".")
    if not dot:
        return None
    ext = ext.lower()
    return ext if ext in IMAGE_CONTENT_TYPES else None


__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "IMAGE_CONTENT_TYPES",
    "PUBLISHED_DATA_BLOB",
    "PUBLISHED_DOCUMENT_BLOB",
    "image_extension",
]
