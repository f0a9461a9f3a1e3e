"""Editor side of the edit session protocol.

:class:`EditorSession` owns the in-memory content tree for one editing
session and applies messages reported by the preview document to it,
persisting the preview snapshot after every change. The document applies
text edits optimistically before the editor sees them, so the editor's tree
catches up with the document when :meth:`EditorSession.handle` runs; there
is no rollback channel back into the document.

Failures never propagate out of :meth:`EditorSession.handle`: messages that
cannot be decoded are dropped (``None``) and storage or path errors come
back as an :class:`EditOutcome` with ``applied=False``.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import logging
import typing as typ

from .instrument.instrumentor import basename
from .paths import MISSING, PathError, delete_item, delete_path, get_path, insert_item, set_path
from .protocol import (
    AddPortfolioImage,
    DeletePortfolioImage,
    EditorMessage,
    EditSectionHtml,
    ElementEdited,
    ImageUpload,
    ToggleEditMode,
    decode_editor_message,
)
from .storage import StorageError

if typ.TYPE_CHECKING:
    from .config import GalleryConfig, LayoutConfig
    from .storage import ContentStore, ContentTree, PhotoLibrary

logger = logging.getLogger(__name__)


@dc.dataclass(slots=True)
class EditOutcome:
    """Result of handling one editor-bound message.

    Attributes
    ----------
    message : EditorMessage
        The decoded message that was handled.
    applied : bool
        Whether the content tree changed and the preview was saved.
    detail : str
        Human-readable summary or failure reason.
    url : str | None
        Public URL of an uploaded image.
    pending_section : tuple[str, str] | None
        ``(section_path, html)`` awaiting confirmation in the section
        editor; only set for ``editSectionHtml``.
    """

    message: EditorMessage
    applied: bool
    detail: str = ""
    url: str | None = None
    pending_section: tuple[str, str] | None = None


class EditorSession:
    """Apply document messages to the preview content tree."""

    def __init__(
        self,
        store: ContentStore,
        layout: LayoutConfig,
        *,
        photos: PhotoLibrary | None = None,
    ) -> None:
        self.store = store
        self.layout = layout
        self.photos = photos
        self.edit_mode = False
        self._tree: ContentTree | None = None

    @property
    def tree(self) -> ContentTree:
        """The preview content tree, loaded on first use."""
        if self._tree is None:
            self._tree = self.store.load_preview()
        return self._tree

    def reload(self) -> ContentTree:
        """Forget the cached tree and read the preview snapshot again."""
        self._tree = None
        return self.tree

    def set_edit_mode(self, enabled: bool) -> ToggleEditMode:
        """Record the new mode and return the message to push into the document."""
        self.edit_mode = enabled
        return ToggleEditMode(enabled=enabled)

    def handle(self, raw: bytes | str | cabc.Mapping[str, typ.Any]) -> EditOutcome | None:
        """Apply one message from the document.

        Parameters
        ----------
        raw : bytes | str | Mapping
            The message as received from the transport.

        Returns
        -------
        EditOutcome | None
            ``None`` when the message was malformed or of an unknown type and
            has been dropped; otherwise the outcome of applying it.
        """
        message = decode_editor_message(raw)
        if message is None:
            return None
        try:
            match message:
                case ElementEdited(path=path, new_value=value):
                    set_path(self.tree, path, value)
                    self._persist()
                    return EditOutcome(message, applied=True, detail=f"Updated {path}")
                case ImageUpload(file=file, filename=filename, path=path):
                    url = self._upload(filename, file)
                    set_path(self.tree, path, filename)
                    self._persist()
                    return EditOutcome(message, applied=True, detail=f"Replaced image at {path}", url=url)
                case AddPortfolioImage(file=file, filename=filename):
                    return self._add_gallery_image(message, file, filename)
                case DeletePortfolioImage(index=index, filename=filename):
                    return self._delete_gallery_image(message, index, filename)
                case EditSectionHtml(section_path=section_path, html=html):
                    return EditOutcome(
                        message,
                        applied=False,
                        detail=f"Editing custom HTML for {section_path}",
                        pending_section=(section_path, html),
                    )
        except (PathError, StorageError) as exc:
            logger.warning("Could not apply %s: %s", type(message).__name__, exc)
            return EditOutcome(message, applied=False, detail=str(exc))
        return None

    def save_section_html(self, section_path: str, html: str) -> None:
        """Store ``html`` as the custom markup override of ``section_path``."""
        set_path(self.tree, f"{section_path}.customHtml", html)
        self._persist()

    def clear_section_html(self, section_path: str) -> None:
        """Remove the override of ``section_path`` so the template renders again."""
        delete_path(self.tree, f"{section_path}.customHtml")
        self._persist()

    def _persist(self) -> None:
        self.store.save_preview(self.tree)

    def _gallery(self) -> GalleryConfig:
        if self.layout.gallery is None:
            msg = "No gallery is configured in the layout."
            raise PathError(msg)
        return self.layout.gallery

    def _upload(self, filename: str, file: str) -> str | None:
        if self.photos is None:
            msg = f"No photo library is configured; cannot upload '{filename}'."
            raise StorageError(msg)
        return self.photos.upload(filename, file)

    def _add_gallery_image(self, message: AddPortfolioImage, file: str, filename: str) -> EditOutcome:
        gallery = self._gallery()
        url = self._upload(filename, file)
        position = insert_item(
            self.tree, gallery.path, {gallery.src_field: filename, gallery.alt_field: ""}
        )
        self._persist()
        return EditOutcome(
            message, applied=True, detail=f"Added image {position} to {gallery.path}", url=url
        )

    def _delete_gallery_image(
        self, message: DeletePortfolioImage, index: int | None, filename: str | None
    ) -> EditOutcome:
        gallery = self._gallery()
        items = get_path(self.tree, gallery.path)
        if items is MISSING or not isinstance(items, list):
            return EditOutcome(message, applied=False, detail=f"{gallery.path} holds no images")
        position = reconcile_gallery_index(items, index, filename, src_field=gallery.src_field)
        if position is None:
            return EditOutcome(
                message,
                applied=False,
                detail=f"No image matches filename {filename!r} or index {index}",
            )
        delete_item(self.tree, gallery.path, position)
        self._persist()
        return EditOutcome(message, applied=True, detail=f"Removed image {position} from {gallery.path}")


def reconcile_gallery_index(
    items: cabc.Sequence[object],
    index: int | None,
    filename: str | None,
    *,
    src_field: str = "src",
) -> int | None:
    """Return the position to delete, matching by filename before index.

    The rendered index can be stale when the editor's sequence has drifted
    from the document, so a filename match always wins. Filenames are
    compared by basename with any query string removed.

    Examples
    --------
    >>> items = [{"src": "a.jpg"}, {"src": "b.jpg"}, {"src": "c.jpg"}]
    >>> reconcile_gallery_index(items, 5, "b.jpg")
    1
    >>> reconcile_gallery_index(items, 2, "zzz.jpg")
    2
    >>> reconcile_gallery_index(items, 9, "zzz.jpg") is None
    True
    """
    if filename:
        wanted = basename(filename)
        for position, item in enumerate(items):
            source = item.get(src_field) if isinstance(item, cabc.Mapping) else item
            if isinstance(source, str) and basename(source) == wanted:
                return position
    if index is not None and 0 <= index < len(items):
        return index
    return None


__all__ = ["EditOutcome", "EditorSession", "reconcile_gallery_index"]
