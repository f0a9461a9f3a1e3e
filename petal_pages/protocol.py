"""Messages exchanged between the preview document and the editor.

Every message is a small JSON object discriminated by its ``type`` field.
Only :class:`ToggleEditMode` travels into the document; every other message
is emitted by the document and consumed by the editor. Messages are
fire-and-forget: nothing waits for an acknowledgement, and a receiver drops
anything it cannot decode instead of failing the session.

Examples
--------
>>> encode_message(ToggleEditMode(enabled=True))
b'{"type":"toggleEditMode","enabled":true}'
>>> decode_editor_message('{"type":"deletePortfolioImage","index":5,"filename":"b.jpg"}')
DeletePortfolioImage(index=5, filename='b.jpg')
>>> decode_editor_message('{"type":"selfDestruct"}') is None
True
"""

from __future__ import annotations

import base64
import binascii
import collections.abc as cabc
import logging
import typing as typ

import msgspec
import msgspec.json

logger = logging.getLogger(__name__)


class Message(msgspec.Struct, tag_field="type", rename="camel", frozen=True):
    """Base class for protocol messages; field names travel in camelCase."""


class ToggleEditMode(Message, tag="toggleEditMode"):
    """Switch the document's editing affordances on or off."""

    enabled: bool


class ElementEdited(Message, tag="elementEdited"):
    """A confirmed text edit, already applied optimistically by the document."""

    path: str
    new_value: str
    old_value: str = ""


class ImageUpload(Message, tag="imageUpload"):
    """Replace the image at ``path`` with an uploaded file.

    ``file`` carries the image as base64, usually as a ``data:`` URL.
    """

    file: str
    filename: str
    path: str


class AddPortfolioImage(Message, tag="addPortfolioImage"):
    """Append a new image to the gallery sequence."""

    file: str
    filename: str


class DeletePortfolioImage(Message, tag="deletePortfolioImage"):
    """Remove a gallery image, identified by filename first and index second."""

    index: int | None = None
    filename: str | None = None


class EditSectionHtml(Message, tag="editSectionHtml"):
    """Open the custom HTML editor for a section with its current markup."""

    section_path: str
    html: str


DocumentMessage = ToggleEditMode
EditorMessage = (
    ElementEdited
    | ImageUpload
    | AddPortfolioImage
    | DeletePortfolioImage
    | EditSectionHtml
)

_DOCUMENT_TAGS = frozenset({"toggleEditMode"})
_EDITOR_TAGS = frozenset(
    {
        "elementEdited",
        "imageUpload",
        "addPortfolioImage",
        "deletePortfolioImage",
        "editSectionHtml",
    }
)


def _decode(
    raw: bytes | str | cabc.Mapping[str, typ.Any],
    target: typ.Any,
    tags: frozenset[str],
) -> typ.Any:
    if isinstance(raw, cabc.Mapping):
        payload: typ.Any = dict(raw)
    else:
        try:
            payload = msgspec.json.decode(raw)
        except (msgspec.DecodeError, TypeError) as exc:
            logger.debug("Dropping undecodable message: %s", exc)
            return None
    if not isinstance(payload, dict):
        logger.debug("Dropping non-object message of type %s", type(payload).__name__)
        return None
    kind = payload.get("type")
    if kind not in tags:
        logger.debug("Dropping message with unrecognised type %r", kind)
        return None
    try:
        return msgspec.convert(payload, type=target)
    except msgspec.ValidationError as exc:
        logger.debug("Dropping malformed %s message: %s", kind, exc)
        return None


def decode_document_message(
    raw: bytes | str | cabc.Mapping[str, typ.Any],
) -> DocumentMessage | None:
    """Decode a message addressed to the document, or ``None`` if unusable."""
    return _decode(raw, DocumentMessage, _DOCUMENT_TAGS)


def decode_editor_message(
    raw: bytes | str | cabc.Mapping[str, typ.Any],
) -> EditorMessage | None:
    """Decode a message addressed to the editor, or ``None`` if unusable.

    Parameters
    ----------
    raw : bytes | str | Mapping
        JSON text as received from the transport, or an already parsed
        object.

    Returns
    -------
    EditorMessage | None
        The typed message. Malformed JSON, unknown ``type`` values, and
        payloads with missing or mistyped fields all yield ``None``.
    """
    return _decode(raw, EditorMessage, _EDITOR_TAGS)


def encode_message(message: Message) -> bytes:
    """Serialise ``message`` to JSON, including its ``type`` discriminator."""
    return msgspec.json.encode(message)


def decode_data_url(file: str) -> bytes:
    """Return the binary content of a base64 payload or ``data:`` URL.

    Raises
    ------
    ValueError
        If the payload is not valid base64.
    """
    _, comma, encoded = file.partition(",")
    if not comma:
        encoded = file
    try:
        return base64.b64decode(encoded.strip(), validate=True)
    except binascii.Error as exc:
        msg = "Image payload is not valid base64."
        raise ValueError(msg) from exc


def encode_data_url(data: bytes, content_type: str) -> str:
    """Return ``data`` as a ``data:<content_type>;base64,...`` URL."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


__all__ = [
    "AddPortfolioImage",
    "DeletePortfolioImage",
    "DocumentMessage",
    "EditSectionHtml",
    "EditorMessage",
    "ElementEdited",
    "ImageUpload",
    "Message",
    "ToggleEditMode",
    "decode_data_url",
    "decode_document_message",
    "decode_editor_message",
    "encode_data_url",
    "encode_message",
]
