"""Promote preview content to production and publish the built site.

The pipeline moves through ``DRAFT -> PROMOTED -> COMPILED -> UPLOADED``.
Each stage finishes before the next begins:

1. *promote* copies the preview snapshot over the production snapshot;
2. *compile* builds the site document from production and blocks until the
   artefact exists;
3. *upload* publishes ``data.json`` and then the built document.

A failed build stops the run before anything is uploaded. A failed upload is
reported without rolling production back; publishing again is safe and
converges on the same result.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import logging
import typing as typ

from ._constants import PUBLISHED_DATA_BLOB, PUBLISHED_DOCUMENT_BLOB
from .build import BuildError
from .storage import StorageError, dump_tree

if typ.TYPE_CHECKING:
    from .build import Builder
    from .storage import BlobStore, ContentStore

logger = logging.getLogger(__name__)


class PublishStage(enum.IntEnum):
    """Stages of a publish run, in order."""

    DRAFT = 0
    PROMOTED = 1
    COMPILED = 2
    UPLOADED = 3


@dc.dataclass(slots=True)
class PublishResult:
    """How far a publish run got and why it stopped.

    Attributes
    ----------
    ok : bool
        ``True`` only when the built document was uploaded.
    stage : PublishStage
        Last stage that completed.
    message : str
        Human-readable summary.
    diagnostics : str
        Build output or storage error text on failure.
    warnings : list[str]
        Soft failures that did not stop the run.
    url : str | None
        Public URL of the uploaded document.
    """

    ok: bool
    stage: PublishStage
    message: str
    diagnostics: str = ""
    warnings: list[str] = dc.field(default_factory=list)
    url: str | None = None


class PublishPipeline:
    """Run promote, compile, and upload in order."""

    def __init__(self, store: ContentStore, builder: Builder, blobs: BlobStore) -> None:
        self.store = store
        self.builder = builder
        self.blobs = blobs

    def run(self) -> PublishResult:
        """Publish the preview content.

        Returns
        -------
        PublishResult
            The outcome; failures are reported here, never raised.
        """
        try:
            tree = self.store.promote()
        except StorageError as exc:
            logger.warning("Publish aborted while promoting: %s", exc)
            return PublishResult(
                ok=False,
                stage=PublishStage.DRAFT,
                message="Could not promote preview content",
                diagnostics=str(exc),
            )

        try:
            document = self.builder.build()
        except BuildError as exc:
            logger.warning("Publish aborted, build failed: %s", exc)
            return PublishResult(
                ok=False,
                stage=PublishStage.PROMOTED,
                message=f"Build failed: {exc}",
                diagnostics=exc.diagnostics,
            )

        warnings: list[str] = []
        try:
            self.blobs.ensure_container()
        except StorageError as exc:
            logger.warning("Publish upload failed: %s", exc)
            return PublishResult(
                ok=False,
                stage=PublishStage.COMPILED,
                message="Could not prepare the storage container",
                diagnostics=str(exc),
            )

        try:
            self.blobs.put(
                PUBLISHED_DATA_BLOB, dump_tree(tree).encode("utf-8"), "application/json"
            )
        except StorageError as exc:
            logger.warning("Could not upload %s: %s", PUBLISHED_DATA_BLOB, exc)
            warnings.append(f"{PUBLISHED_DATA_BLOB} was not uploaded: {exc}")

        try:
            url = self.blobs.put(
                PUBLISHED_DOCUMENT_BLOB, document.read_bytes(), "text/html"
            )
        except (StorageError, OSError) as exc:
            logger.warning("Could not upload %s: %s", PUBLISHED_DOCUMENT_BLOB, exc)
            return PublishResult(
                ok=False,
                stage=PublishStage.COMPILED,
                message=f"Upload of {PUBLISHED_DOCUMENT_BLOB} failed; production content is already promoted",
                diagnostics=str(exc),
                warnings=warnings,
            )

        logger.info("Published %s to %s", PUBLISHED_DOCUMENT_BLOB, url)
        return PublishResult(
            ok=True,
            stage=PublishStage.UPLOADED,
            message="Published successfully",
            warnings=warnings,
            url=url,
        )


__all__ = ["PublishPipeline", "PublishResult", "PublishStage"]
