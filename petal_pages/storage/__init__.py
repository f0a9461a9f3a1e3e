"""Content snapshots, blob storage, and the photo library."""

from .blobs import BlobInfo, BlobStore, LocalBlobStore, S3BlobStore, StorageError
from .content import ContentStore, ContentTree, dump_tree
from .photos import PhotoLibrary, content_type_for

__all__ = [
    "BlobInfo",
    "BlobStore",
    "ContentStore",
    "ContentTree",
    "LocalBlobStore",
    "PhotoLibrary",
    "S3BlobStore",
    "StorageError",
    "content_type_for",
    "dump_tree",
]
