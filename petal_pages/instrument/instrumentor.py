"""Mark rendered elements with the content paths they were rendered from.

Instrumentation runs on the server over a BeautifulSoup tree, after the
template has been compiled. Text elements receive ``data-edit-path``; images
receive ``data-image-path`` plus a drop zone and, for gallery items, a delete
button; the gallery container receives ``data-gallery-path``; overridable
sections receive an *Edit HTML* button. The browser side only reads these
attributes, so no path is ever derived in the frame.

Repeated elements are addressed by their position among matching siblings,
which assumes the template renders sequences in content-tree order. A
template can sidestep that by emitting ``data-edit-path`` itself (for
example with ``{{@index}}``); such attributes are left alone.
"""

from __future__ import annotations

import logging
import typing as typ

from bs4 import BeautifulSoup, Tag

if typ.TYPE_CHECKING:
    from petal_pages.config import ImageRule, LayoutConfig, TextRule

logger = logging.getLogger(__name__)

EDIT_PATH_ATTR = "data-edit-path"
IMAGE_PATH_ATTR = "data-image-path"
IMAGE_INDEX_ATTR = "data-image-index"
IMAGE_FILENAME_ATTR = "data-image-filename"
GALLERY_PATH_ATTR = "data-gallery-path"
SECTION_PATH_ATTR = "data-section-path"
CONTROL_ATTR = "data-petal-control"
EDIT_MODE_ATTR = "data-petal-edit-mode"

EDITABLE_CLASS = "editable"
EDITABLE_IMAGE_CLASS = "editable-image"

INSTRUMENTATION_ATTRS = (
    EDIT_PATH_ATTR,
    IMAGE_PATH_ATTR,
    IMAGE_INDEX_ATTR,
    IMAGE_FILENAME_ATTR,
    GALLERY_PATH_ATTR,
)
INSTRUMENTATION_CLASSES = (EDITABLE_CLASS, EDITABLE_IMAGE_CLASS, "editing")

_INDEX_TOKEN = "{index}"


def instrument_document(html: str, layout: LayoutConfig, *, edit_mode: bool = False) -> str:
    """Return ``html`` with edit targets and editing controls marked up.

    Parameters
    ----------
    html : str
        Compiled document.
    layout : LayoutConfig
        Selector tables naming the editable text, images, gallery, and
        sections.
    edit_mode : bool, optional
        Whether the injected controls start visible.

    Returns
    -------
    str
        The instrumented document. Instrumenting the result again returns it
        unchanged.
    """
    soup = BeautifulSoup(html, "html.parser")
    instrument_tree(soup, layout, edit_mode=edit_mode)
    return str(soup)


def instrument_tree(soup: BeautifulSoup, layout: LayoutConfig, *, edit_mode: bool = False) -> BeautifulSoup:
    """Instrument ``soup`` in place and return it."""
    text_count = sum(_mark_text(soup, rule) for rule in layout.text_rules)
    image_count = sum(_mark_images(soup, rule) for rule in layout.image_rules)
    if layout.gallery is not None:
        gallery = soup.select_one(layout.gallery.selector)
        if gallery is not None:
            gallery[GALLERY_PATH_ATTR] = layout.gallery.path
            _ensure_control(
                gallery,
                "gallery-drop",
                "portfolio-drop-overlay",
                "Drop images to add them to the gallery",
            )
    for rule in layout.sections:
        section = soup.select_one(rule.selector)
        if section is None:
            continue
        button = _ensure_control(section, "edit-html", "edit-html-btn", "Edit HTML", tag="button")
        button[SECTION_PATH_ATTR] = rule.path
    set_edit_mode(soup, edit_mode)
    logger.debug("Instrumented %d text and %d image targets", text_count, image_count)
    return soup


def set_edit_mode(soup: BeautifulSoup, enabled: bool) -> None:
    """Show or hide every injected control and record the mode on ``<body>``."""
    for control in soup.select(f"[{CONTROL_ATTR}]"):
        if enabled:
            control.attrs.pop("hidden", None)
        else:
            control["hidden"] = ""
    body = soup.body
    if body is not None:
        body[EDIT_MODE_ATTR] = "true" if enabled else "false"


def derive_text_path(element: Tag, rule: TextRule) -> str | None:
    """Return the content path ``element`` was rendered from, if derivable."""
    if rule.by_section:
        for selector, path in rule.by_section:
            if element.css.closest(selector) is not None:
                return path
        return None
    if rule.ordinal_paths:
        position = element_position(element, rule.selector, rule.index_of, rule.within)
        if position is None or position >= len(rule.ordinal_paths):
            return None
        return rule.ordinal_paths[position]
    return _format_indexed(element, rule.path, rule.selector, rule.index_of, rule.within)


def derive_image_path(element: Tag, rule: ImageRule) -> tuple[str, int | None] | None:
    """Return the ``src`` path of an image and its gallery position, if any."""
    position = element_position(element, rule.selector, rule.index_of, rule.within)
    if _INDEX_TOKEN in rule.path:
        if position is None:
            return None
        return rule.path.replace(_INDEX_TOKEN, str(position)), position
    return rule.path, position if rule.deletable else None


def element_position(
    element: Tag,
    selector: str,
    index_of: str | None = None,
    within: str | None = None,
) -> int | None:
    """Return the position of ``element`` among its repeated siblings.

    The repeated item is ``element`` itself or, with ``index_of``, its closest
    ancestor matching that selector. Positions are counted among the items
    inside the closest ``within`` container (default: the item's parent).
    """
    item = element.css.closest(index_of) if index_of else element
    if item is None:
        return None
    parent = item.parent
    if parent is None:
        return None
    container = parent.css.closest(within) if within else parent
    if container is None:
        return None
    for position, candidate in enumerate(container.select(index_of or selector)):
        if candidate is item:
            return position
    return None


def image_filename(element: Tag) -> str:
    """Return the bare filename an image was rendered from."""
    source = element.get("data-src") or element.get("src") or ""
    if isinstance(source, list):
        source = " ".join(source)
    return basename(source)


def basename(source: str) -> str:
    """Return the last path segment of a URL or filename without its query."""
    name = source.rsplit("/", 1)[-1]
    return name.split("?", 1)[0].split("#", 1)[0]


def add_class(element: Tag, name: str) -> None:
    classes = list(element.get_attribute_list("class"))
    if name not in classes:
        classes.append(name)
        element["class"] = classes


def _format_indexed(
    element: Tag,
    path: str | None,
    selector: str,
    index_of: str | None,
    within: str | None,
) -> str | None:
    if not path or _INDEX_TOKEN not in path:
        return path
    position = element_position(element, selector, index_of, within)
    if position is None:
        return None
    return path.replace(_INDEX_TOKEN, str(position))


def _mark_text(soup: BeautifulSoup, rule: TextRule) -> int:
    count = 0
    for element in soup.select(rule.selector):
        if element.has_attr(CONTROL_ATTR):
            continue
        if not element.get(EDIT_PATH_ATTR):
            path = derive_text_path(element, rule)
            if not path:
                continue
            element[EDIT_PATH_ATTR] = path
        add_class(element, EDITABLE_CLASS)
        count += 1
    return count


def _mark_images(soup: BeautifulSoup, rule: ImageRule) -> int:
    count = 0
    for element in soup.select(rule.selector):
        derived = derive_image_path(element, rule)
        if derived is None:
            continue
        path, position = derived
        path = str(element.get(IMAGE_PATH_ATTR) or path)
        element[IMAGE_PATH_ATTR] = path
        add_class(element, EDITABLE_IMAGE_CLASS)
        container = element.parent
        if container is None:
            continue
        zone = _ensure_control(container, "drop-zone", "image-drop-zone", "Drop image to replace")
        zone[IMAGE_PATH_ATTR] = path
        if rule.deletable and position is not None:
            element[IMAGE_INDEX_ATTR] = str(position)
            element[IMAGE_FILENAME_ATTR] = image_filename(element)
            delete = _ensure_control(container, "delete-image", "image-delete-btn", "×", tag="button")
            delete[IMAGE_PATH_ATTR] = path
            delete["aria-label"] = "Delete image"
        count += 1
    return count


def _ensure_control(
    parent: Tag,
    kind: str,
    class_name: str,
    label: str,
    *,
    tag: str = "div",
) -> Tag:
    """Return the ``kind`` control directly under ``parent``, creating it once."""
    for child in parent.find_all(tag, recursive=False):
        if child.get(CONTROL_ATTR) == kind:
            return child
    soup = _owner(parent)
    control = soup.new_tag(tag, attrs={"class": class_name, CONTROL_ATTR: kind})
    if tag == "button":
        control["type"] = "button"
    control.string = label
    parent.append(control)
    return control


def _owner(element: Tag) -> BeautifulSoup:
    node: Tag = element
    while node.parent is not None:
        node = node.parent
    return typ.cast("BeautifulSoup", node)


__all__ = [
    "CONTROL_ATTR",
    "EDITABLE_CLASS",
    "EDITABLE_IMAGE_CLASS",
    "EDIT_MODE_ATTR",
    "EDIT_PATH_ATTR",
    "GALLERY_PATH_ATTR",
    "IMAGE_FILENAME_ATTR",
    "IMAGE_INDEX_ATTR",
    "IMAGE_PATH_ATTR",
    "INSTRUMENTATION_ATTRS",
    "INSTRUMENTATION_CLASSES",
    "SECTION_PATH_ATTR",
    "add_class",
    "basename",
    "derive_image_path",
    "derive_text_path",
    "element_position",
    "image_filename",
    "instrument_document",
    "instrument_tree",
    "set_edit_mode",
]
