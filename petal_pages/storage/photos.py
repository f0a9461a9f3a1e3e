"""The photo library: image blobs available to the site."""

from __future__ import annotations

import logging
import typing as typ

from petal_pages._constants import DEFAULT_CONTENT_TYPE, IMAGE_CONTENT_TYPES, image_extension
from petal_pages.protocol import decode_data_url

from .blobs import StorageError

if typ.TYPE_CHECKING:
    from .blobs import BlobInfo, BlobStore

logger = logging.getLogger(__name__)


def content_type_for(filename: str) -> str:
    """Return the content type implied by the extension of ``filename``."""
    ext = image_extension(filename)
    return IMAGE_CONTENT_TYPES[ext] if ext else DEFAULT_CONTENT_TYPE


class PhotoLibrary:
    """Upload, list, and delete photos in the photos container."""

    def __init__(self, blobs: BlobStore) -> None:
        self.blobs = blobs
        self._container_ready = False

    def _ensure(self) -> None:
        if not self._container_ready:
            self.blobs.ensure_container()
            self._container_ready = True

    def list(self) -> list[BlobInfo]:
        """Return image blobs sorted by name; other blobs are skipped."""
        self._ensure()
        photos = [blob for blob in self.blobs.list() if image_extension(blob.name)]
        photos.sort(key=lambda blob: blob.name)
        return photos

    def upload(self, filename: str, file: str | bytes) -> str:
        """Store a photo and return its public URL.

        Parameters
        ----------
        filename : str
            Blob name; its extension selects the content type.
        file : str or bytes
            Raw bytes, or base64 text with an optional ``data:`` URL prefix.

        Raises
        ------
        StorageError
            If the name is empty, the payload is not valid base64, or the
            upload fails.
        """
        name = filename.strip()
        if not name:
            msg = "A filename is required to upload a photo."
            raise StorageError(msg)
        if isinstance(file, str):
            try:
                data = decode_data_url(file)
            except ValueError as exc:
                msg = f"Photo '{name}' could not be decoded: {exc}"
                raise StorageError(msg) from exc
        else:
            data = file
        self._ensure()
        url = self.blobs.put(name, data, content_type_for(name))
        logger.info("Uploaded photo %s (%d bytes)", name, len(data))
        return url

    def delete(self, filename: str) -> bool:
        self._ensure()
        return self.blobs.delete(filename)


__all__ = ["PhotoLibrary", "content_type_for"]
