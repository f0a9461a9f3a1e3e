"""Named binary objects with a content type and a public URL.

Implementations:

- :class:`S3BlobStore` talks to any S3-compatible endpoint through boto3.
- :class:`LocalBlobStore` keeps blobs in a directory, for development and
  tests.

Both raise :class:`StorageError` for every backend failure, so callers only
handle one exception type.
"""

from __future__ import annotations

import dataclasses as dc
import json
import logging
import typing as typ
from pathlib import Path

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from petal_pages._constants import DEFAULT_CONTENT_TYPE

if typ.TYPE_CHECKING:
    from petal_pages.config import StorageSettings

logger = logging.getLogger(__name__)

_MISSING_CODES = frozenset({"404", "NoSuchKey", "NotFound", "NoSuchBucket"})
_METADATA_SUFFIX = ".meta.json"


class StorageError(RuntimeError):
    """Raised when a content snapshot or blob cannot be read or written."""


@dc.dataclass(slots=True, frozen=True)
class BlobInfo:
    """Listing entry for a stored blob."""

    name: str
    url: str
    size: int = 0
    content_type: str | None = None


class BlobStore(typ.Protocol):
    """Container of named blobs; creating the container is idempotent."""

    def ensure_container(self) -> None: ...

    def put(self, name: str, data: bytes, content_type: str) -> str: ...

    def get(self, name: str) -> bytes | None: ...

    def list(self) -> list[BlobInfo]: ...

    def delete(self, name: str) -> bool: ...

    def url_for(self, name: str) -> str: ...


class S3BlobStore:
    """Blob store backed by one bucket of an S3-compatible service."""

    def __init__(
        self,
        bucket: str,
        *,
        client: typ.Any | None = None,
        endpoint: str | None = None,
        region: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        public_base_url: str | None = None,
        connect_timeout: float = 5.0,
        read_timeout: float = 30.0,
    ) -> None:
        """Create a store for ``bucket``.

        Parameters
        ----------
        bucket : str
            Bucket holding the blobs.
        client : botocore client, optional
            Preconfigured S3 client; built from the remaining arguments when
            omitted.
        endpoint, region, access_key, secret_key : str, optional
            Connection details for the S3-compatible service.
        public_base_url : str, optional
            Base URL under which blobs are publicly served. Defaults to
            ``<endpoint>/<bucket>``.
        connect_timeout, read_timeout : float, optional
            Socket timeouts in seconds; storage calls fail fast rather than
            hang.
        """
        if not bucket:
            msg = "A bucket name is required for S3 blob storage."
            raise StorageError(msg)
        self.bucket = bucket
        self.region = region
        self._endpoint = endpoint
        self._public_base_url = public_base_url
        if client is None:
            session = boto3.session.Session()
            client = session.client(
                "s3",
                endpoint_url=endpoint,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
                config=Config(
                    connect_timeout=connect_timeout,
                    read_timeout=read_timeout,
                    retries={"mode": "standard", "total_max_attempts": 1},
                    signature_version="s3v4",
                ),
            )
        self.client = client

    @classmethod
    def from_settings(cls, storage: StorageSettings, *, bucket: str | None = None) -> S3BlobStore:
        """Build a store for ``bucket`` (default: the site bucket) from settings."""
        name = bucket or storage.bucket
        if not name:
            msg = "No storage bucket configured; set [storage] bucket or PETAL_BUCKET."
            raise StorageError(msg)
        return cls(
            name,
            endpoint=storage.endpoint,
            region=storage.region,
            access_key=storage.access_key,
            secret_key=storage.secret_key,
            public_base_url=storage.public_base_url,
        )

    def ensure_container(self) -> None:
        """Create the bucket unless it already exists."""
        try:
            self.client.head_bucket(Bucket=self.bucket)
            return
        except ClientError as exc:
            if _error_code(exc) not in _MISSING_CODES:
                msg = f"Unable to check bucket '{self.bucket}': {exc}"
                raise StorageError(msg) from exc
        except BotoCoreError as exc:
            msg = f"Unable to reach storage for bucket '{self.bucket}': {exc}"
            raise StorageError(msg) from exc

        kwargs: dict[str, typ.Any] = {"Bucket": self.bucket}
        if self.region and self.region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        try:
            self.client.create_bucket(**kwargs)
        except ClientError as exc:
            if _error_code(exc) in {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}:
                return
            msg = f"Unable to create bucket '{self.bucket}': {exc}"
            raise StorageError(msg) from exc
        except BotoCoreError as exc:
            msg = f"Unable to create bucket '{self.bucket}': {exc}"
            raise StorageError(msg) from exc
        logger.info("Created bucket %s", self.bucket)

    def put(self, name: str, data: bytes, content_type: str) -> str:
        """Upload ``data`` as ``name``, replacing any existing blob."""
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=name,
                Body=data,
                ContentType=content_type or DEFAULT_CONTENT_TYPE,
            )
        except (BotoCoreError, ClientError) as exc:
            msg = f"Failed to upload '{name}' to bucket '{self.bucket}': {exc}"
            raise StorageError(msg) from exc
        return self.url_for(name)

    def get(self, name: str) -> bytes | None:
        """Return the content of ``name`` or ``None`` if it does not exist."""
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=name)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                return None
            msg = f"Failed to download '{name}' from bucket '{self.bucket}': {exc}"
            raise StorageError(msg) from exc
        except BotoCoreError as exc:
            msg = f"Failed to download '{name}' from bucket '{self.bucket}': {exc}"
            raise StorageError(msg) from exc
        body = response.get("Body")
        return body.read() if body else b""

    def list(self) -> list[BlobInfo]:
        """Return every blob in the bucket."""
        blobs: list[BlobInfo] = []
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket):
                for entry in page.get("Contents", []):
                    key = entry["Key"]
                    blobs.append(
                        BlobInfo(name=key, url=self.url_for(key), size=int(entry.get("Size", 0)))
                    )
        except (BotoCoreError, ClientError) as exc:
            msg = f"Failed to list bucket '{self.bucket}': {exc}"
            raise StorageError(msg) from exc
        return blobs

    def delete(self, name: str) -> bool:
        """Delete ``name``; S3 reports success whether or not it existed."""
        try:
            self.client.delete_object(Bucket=self.bucket, Key=name)
        except (BotoCoreError, ClientError) as exc:
            msg = f"Failed to delete '{name}' from bucket '{self.bucket}': {exc}"
            raise StorageError(msg) from exc
        return True

    def url_for(self, name: str) -> str:
        base = self._public_base_url
        if not base:
            endpoint = self._endpoint or f"https://s3.{self.region or 'us-east-1'}.amazonaws.com"
            base = f"{endpoint.rstrip('/')}/{self.bucket}"
        return f"{base.rstrip('/')}/{name}"


class LocalBlobStore:
    """File-based blob store with a JSON sidecar recording each content type."""

    def __init__(self, base_path: Path | str, *, public_base_url: str | None = None) -> None:
        self.base_path = Path(base_path)
        self._public_base_url = public_base_url

    def ensure_container(self) -> None:
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            msg = f"Unable to create blob directory {self.base_path}: {exc}"
            raise StorageError(msg) from exc

    def put(self, name: str, data: bytes, content_type: str) -> str:
        target = self._path(name)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
            self._meta_path(name).write_text(
                json.dumps({"content_type": content_type or DEFAULT_CONTENT_TYPE}),
                encoding="utf-8",
            )
        except OSError as exc:
            msg = f"Failed to store blob '{name}': {exc}"
            raise StorageError(msg) from exc
        return self.url_for(name)

    def get(self, name: str) -> bytes | None:
        target = self._path(name)
        try:
            return target.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            msg = f"Failed to read blob '{name}': {exc}"
            raise StorageError(msg) from exc

    def content_type(self, name: str) -> str | None:
        """Return the content type recorded when ``name`` was stored."""
        try:
            meta = json.loads(self._meta_path(name).read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        return meta.get("content_type")

    def list(self) -> list[BlobInfo]:
        if not self.base_path.exists():
            return []
        blobs = []
        for path in sorted(self.base_path.rglob("*")):
            if not path.is_file() or path.name.endswith(_METADATA_SUFFIX):
                continue
            name = path.relative_to(self.base_path).as_posix()
            blobs.append(
                BlobInfo(
                    name=name,
                    url=self.url_for(name),
                    size=path.stat().st_size,
                    content_type=self.content_type(name),
                )
            )
        return blobs

    def delete(self, name: str) -> bool:
        target = self._path(name)
        if not target.exists():
            return False
        try:
            target.unlink()
            self._meta_path(name).unlink(missing_ok=True)
        except OSError as exc:
            msg = f"Failed to delete blob '{name}': {exc}"
            raise StorageError(msg) from exc
        return True

    def url_for(self, name: str) -> str:
        if self._public_base_url:
            return f"{self._public_base_url.rstrip('/')}/{name}"
        return self._path(name).resolve().as_uri()

    def _path(self, name: str) -> Path:
        target = (self.base_path / name).resolve()
        if not target.is_relative_to(self.base_path.resolve()):
            msg = f"Blob name '{name}' escapes the store directory."
            raise StorageError(msg)
        return target

    def _meta_path(self, name: str) -> Path:
        target = self._path(name)
        return target.with_name(target.name + _METADATA_SUFFIX)


def _error_code(exc: ClientError) -> str | None:
    return exc.response.get("Error", {}).get("Code")


__all__ = [
    "BlobInfo",
    "BlobStore",
    "LocalBlobStore",
    "S3BlobStore",
    "StorageError",
]
