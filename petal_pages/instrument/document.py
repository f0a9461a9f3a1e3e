"""Headless model of the instrumented preview document.

:class:`DocumentSession` plays the document's half of the edit protocol over
a BeautifulSoup tree: it honours ``toggleEditMode`` pushes, opens the text
editing dialog, applies confirmed edits optimistically, and turns image
drops, deletions, and *Edit HTML* clicks into outbound messages. The browser
bridge script follows the same rules; this model lets the editor and the
tests exercise them without a browser.

All interaction state lives on the session object. Nothing is kept at
module level, so independent sessions never share an edit-mode flag.

Examples
--------
>>> session = DocumentSession(html, load_layout())  # doctest: +SKIP
>>> session.receive({"type": "toggleEditMode", "enabled": True})  # doctest: +SKIP
>>> dialog = session.open_editor("hero.title")  # doctest: +SKIP
>>> dialog.save("Seasonal flowers")  # doctest: +SKIP
ElementEdited(path='hero.title', new_value='Seasonal flowers', old_value='Fresh')
"""

from __future__ import annotations

import copy
import dataclasses as dc
import logging
import re
import time
import typing as typ

from bs4 import BeautifulSoup, Tag

from petal_pages._constants import IMAGE_CONTENT_TYPES, image_extension
from petal_pages.protocol import (
    AddPortfolioImage,
    DeletePortfolioImage,
    EditSectionHtml,
    ElementEdited,
    ImageUpload,
    ToggleEditMode,
    decode_document_message,
    encode_data_url,
)

from .instrumentor import (
    CONTROL_ATTR,
    EDIT_PATH_ATTR,
    IMAGE_FILENAME_ATTR,
    IMAGE_INDEX_ATTR,
    IMAGE_PATH_ATTR,
    INSTRUMENTATION_ATTRS,
    INSTRUMENTATION_CLASSES,
    SECTION_PATH_ATTR,
    add_class,
    instrument_tree,
    set_edit_mode,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from petal_pages.config import LayoutConfig

logger = logging.getLogger(__name__)

_BREAK_PATTERN = re.compile(r"<br\s*/?>", re.IGNORECASE)


@dc.dataclass(slots=True)
class SessionState:
    """Mutable interaction state threaded through every document handler."""

    edit_mode: bool = False
    dialog: TextEditDialog | None = None


@dc.dataclass(slots=True)
class TextEditDialog:
    """The modal text editor opened on one editable element.

    Attributes
    ----------
    path : str
        Content path of the element being edited.
    display_value : str
        Text offered for editing; line breaks appear as newlines.
    old_value : str
        Plain text of the element when the dialog opened.
    has_breaks : bool
        Whether the element held ``<br>`` line breaks, in which case saved
        newlines are written back as ``<br>``.
    """

    path: str
    display_value: str
    old_value: str
    has_breaks: bool
    _element: Tag = dc.field(repr=False)
    _state: SessionState = dc.field(repr=False)
    _open: bool = dc.field(default=True, repr=False)

    @property
    def is_open(self) -> bool:
        return self._open

    def save(self, value: str) -> ElementEdited | None:
        """Close the dialog, apply ``value`` locally, and report the edit.

        Returns ``None`` when the dialog was already closed or the value is
        unchanged. The element is updated before the message is returned and
        is not reverted if the editor later rejects it.
        """
        if not self._close():
            return None
        if value in (self.old_value, self.display_value):
            return None
        final = value.replace("\n", "<br>") if self.has_breaks else value
        self._element.clear()
        fragment = BeautifulSoup(final, "html.parser")
        for node in list(fragment.contents):
            self._element.append(node.extract())
        return ElementEdited(path=self.path, new_value=final, old_value=self.old_value)

    def cancel(self) -> None:
        """Dismiss the dialog without emitting anything."""
        self._close()

    def _close(self) -> bool:
        if not self._open:
            return False
        self._open = False
        classes = [name for name in self._element.get_attribute_list("class") if name != "editing"]
        self._element["class"] = classes
        if self._state.dialog is self:
            self._state.dialog = None
        return True


class DocumentSession:
    """Document side of one edit session over an instrumented tree."""

    def __init__(
        self,
        html: str,
        layout: LayoutConfig,
        *,
        edit_mode: bool = False,
        clock: cabc.Callable[[], float] = time.time,
    ) -> None:
        self.soup = BeautifulSoup(html, "html.parser")
        self.layout = layout
        self.state = SessionState(edit_mode=edit_mode)
        self._clock = clock
        instrument_tree(self.soup, layout, edit_mode=edit_mode)

    @property
    def edit_mode(self) -> bool:
        return self.state.edit_mode

    def render(self) -> str:
        """Return the current document markup."""
        return str(self.soup)

    def receive(self, raw: bytes | str | cabc.Mapping[str, typ.Any]) -> None:
        """Handle an inbound message; anything but ``toggleEditMode`` is dropped."""
        match decode_document_message(raw):
            case ToggleEditMode(enabled=enabled):
                self.state.edit_mode = enabled
                set_edit_mode(self.soup, enabled)
                if not enabled and self.state.dialog is not None:
                    self.state.dialog.cancel()
            case None:
                return

    def element_for(self, path: str) -> Tag | None:
        """Return the first element tagged with edit path ``path``."""
        return self.soup.find(attrs={EDIT_PATH_ATTR: path})

    def open_editor(self, path: str) -> TextEditDialog | None:
        """Open the text dialog for ``path``.

        Returns ``None`` outside edit mode, for unknown paths, and while
        another dialog is still open.
        """
        if not self.state.edit_mode or self.state.dialog is not None:
            return None
        element = self.element_for(path)
        if element is None:
            return None
        old_value = element.get_text().strip()
        old_html = element.decode_contents().strip()
        has_breaks = _BREAK_PATTERN.search(old_html) is not None
        display_value = _BREAK_PATTERN.sub("\n", old_html) if has_breaks else old_value
        add_class(element, "editing")
        dialog = TextEditDialog(
            path=path,
            display_value=display_value,
            old_value=old_value,
            has_breaks=has_breaks,
            _element=element,
            _state=self.state,
        )
        self.state.dialog = dialog
        return dialog

    def drop_image(self, path: str, data: bytes, name: str) -> ImageUpload | None:
        """Encode a file dropped on the image at ``path`` as an upload request."""
        if not self.state.edit_mode:
            return None
        if self.soup.find("img", attrs={IMAGE_PATH_ATTR: path}) is None:
            return None
        encoded = self._encode_drop(data, name)
        if encoded is None:
            return None
        file, filename = encoded
        return ImageUpload(file=file, filename=filename, path=path)

    def drop_on_gallery(self, data: bytes, name: str) -> AddPortfolioImage | None:
        """Encode a file dropped on the gallery background as a new image."""
        if not self.state.edit_mode or self.layout.gallery is None:
            return None
        if self.soup.select_one(self.layout.gallery.selector) is None:
            return None
        encoded = self._encode_drop(data, name)
        if encoded is None:
            return None
        file, filename = encoded
        return AddPortfolioImage(file=file, filename=filename)

    def delete_image(self, path: str) -> DeletePortfolioImage | None:
        """Report the deletion of the gallery image at ``path``."""
        if not self.state.edit_mode:
            return None
        image = self.soup.find("img", attrs={IMAGE_PATH_ATTR: path})
        if image is None or not image.has_attr(IMAGE_INDEX_ATTR):
            return None
        return DeletePortfolioImage(
            index=int(str(image[IMAGE_INDEX_ATTR])),
            filename=str(image.get(IMAGE_FILENAME_ATTR, "")) or None,
        )

    def capture_section(self, section_path: str) -> EditSectionHtml | None:
        """Capture the inner markup of a section for the custom HTML editor.

        Injected controls are removed and instrumentation attributes and
        classes are stripped, so the captured markup can be saved as an
        override without carrying editing artefacts into the published site.
        """
        if not self.state.edit_mode:
            return None
        button = self.soup.find(attrs={CONTROL_ATTR: "edit-html", SECTION_PATH_ATTR: section_path})
        if button is None or button.parent is None:
            return None
        clone = copy.copy(button.parent)
        _strip_instrumentation(clone)
        return EditSectionHtml(section_path=section_path, html=clone.decode_contents().strip())

    def _encode_drop(self, data: bytes, name: str) -> tuple[str, str] | None:
        ext = image_extension(name)
        if ext is None:
            logger.debug("Ignoring drop of non-image file %r", name)
            return None
        filename = f"portfolio_{int(self._clock() * 1000)}.{ext}"
        return encode_data_url(data, IMAGE_CONTENT_TYPES[ext]), filename


def _strip_instrumentation(root: Tag) -> None:
    for control in root.select(f"[{CONTROL_ATTR}]"):
        control.decompose()
    for element in root.find_all(True):
        for attr in INSTRUMENTATION_ATTRS:
            element.attrs.pop(attr, None)
        if element.has_attr("class"):
            classes = [
                name
                for name in element.get_attribute_list("class")
                if name not in INSTRUMENTATION_CLASSES
            ]
            if classes:
                element["class"] = classes
            else:
                del element["class"]


__all__ = ["DocumentSession", "SessionState", "TextEditDialog"]
