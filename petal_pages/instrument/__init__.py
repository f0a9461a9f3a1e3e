"""Instrument compiled documents for in-place editing.

``instrument_document`` tags rendered elements with their content paths and
injects the (initially hidden) editing controls; ``DocumentSession`` models
the document's side of the edit protocol over such a tree.
"""

from .document import DocumentSession, SessionState, TextEditDialog
from .instrumentor import (
    CONTROL_ATTR,
    EDIT_PATH_ATTR,
    GALLERY_PATH_ATTR,
    IMAGE_PATH_ATTR,
    SECTION_PATH_ATTR,
    basename,
    derive_image_path,
    derive_text_path,
    element_position,
    instrument_document,
    instrument_tree,
    set_edit_mode,
)

__all__ = [
    "CONTROL_ATTR",
    "EDIT_PATH_ATTR",
    "GALLERY_PATH_ATTR",
    "IMAGE_PATH_ATTR",
    "SECTION_PATH_ATTR",
    "DocumentSession",
    "SessionState",
    "TextEditDialog",
    "basename",
    "derive_image_path",
    "derive_text_path",
    "element_position",
    "instrument_document",
    "instrument_tree",
    "set_edit_mode",
]
