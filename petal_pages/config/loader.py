"""Load edit layout YAML into typed dataclasses."""

from __future__ import annotations

import functools
import typing as typ
from pathlib import Path

from ruamel.yaml import YAML

from .helpers import (
    _as_bool,
    _as_entries,
    _as_optional_paths,
    _as_pairs,
    _optional_str,
    _required_str,
)
from .models import (
    GalleryConfig,
    ImageRule,
    LayoutConfig,
    SectionRule,
    SiteConfigError,
    TextRule,
)

DEFAULT_LAYOUT_PATH = Path(__file__).with_name("default_layout.yaml")


def load_layout(path: Path | None = None) -> LayoutConfig:
    """Load the selector tables describing which elements are editable.

    Parameters
    ----------
    path : Path, optional
        YAML layout file. Defaults to the layout bundled with the package,
        which describes the stock single-page site.

    Returns
    -------
    LayoutConfig
        Section, text, image, and gallery rules in file order.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    SiteConfigError
        If the document is not a mapping or a rule is missing required keys.

    Examples
    --------
    >>> layout = load_layout()
    >>> [rule.path for rule in layout.sections][:2]
    ['hero', 'experience']
    """
    if path is None or Path(path) == DEFAULT_LAYOUT_PATH:
        return _default_layout()
    return _read_layout(Path(path))


@functools.cache
def _default_layout() -> LayoutConfig:
    return _read_layout(DEFAULT_LAYOUT_PATH)


def _read_layout(path: Path) -> LayoutConfig:
    if not path.exists():
        msg = f"Layout file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = f"Top-level structure of '{path}' must be a mapping."
        raise SiteConfigError(msg)
    raw: dict[str, typ.Any] = dict(loaded)

    return LayoutConfig(
        text_rules=tuple(
            _build_text_rule(entry) for entry in _as_entries(raw.get("text"), "text")
        ),
        image_rules=tuple(
            _build_image_rule(entry)
            for entry in _as_entries(raw.get("images"), "images")
        ),
        sections=tuple(
            _build_section_rule(entry)
            for entry in _as_entries(raw.get("sections"), "sections")
        ),
        gallery=_build_gallery(raw.get("gallery")),
    )


def _build_section_rule(payload: typ.Mapping[str, typ.Any]) -> SectionRule:
    """Build a SectionRule; at least one of ``id`` or ``class`` is required."""
    path = _required_str(payload, "path", "Section rule")
    section_id = _optional_str(payload.get("id"))
    class_name = _optional_str(payload.get("class"))
    if not (section_id or class_name):
        msg = f"Section rule '{path}' needs an 'id' or a 'class'."
        raise SiteConfigError(msg)
    return SectionRule(
        path=path,
        tag=_optional_str(payload.get("tag")) or "section",
        id=section_id,
        class_name=class_name,
    )


def _build_text_rule(payload: typ.Mapping[str, typ.Any]) -> TextRule:
    selector = _required_str(payload, "selector", "Text rule")
    rule = TextRule(
        selector=selector,
        path=_optional_str(payload.get("path")),
        by_section=_as_pairs(payload.get("by_section"), f"Text rule '{selector}' by_section"),
        ordinal_paths=_as_optional_paths(
            payload.get("ordinal_paths"), f"Text rule '{selector}' ordinal_paths"
        ),
        index_of=_optional_str(payload.get("index_of")),
        within=_optional_str(payload.get("within")),
    )
    if not (rule.path or rule.by_section or rule.ordinal_paths):
        msg = f"Text rule '{selector}' needs 'path', 'by_section', or 'ordinal_paths'."
        raise SiteConfigError(msg)
    return rule


def _build_image_rule(payload: typ.Mapping[str, typ.Any]) -> ImageRule:
    selector = _required_str(payload, "selector", "Image rule")
    return ImageRule(
        selector=selector,
        path=_required_str(payload, "path", f"Image rule '{selector}'"),
        index_of=_optional_str(payload.get("index_of")),
        within=_optional_str(payload.get("within")),
        deletable=_as_bool(payload.get("deletable", False)),
    )


def _build_gallery(payload: object) -> GalleryConfig | None:
    match payload:
        case None:
            return None
        case {"selector": selector, "path": path, **rest}:
            pass
        case _:
            msg = "Gallery configuration requires 'selector' and 'path'."
            raise SiteConfigError(msg)
    return GalleryConfig(
        selector=str(selector),
        path=str(path),
        src_field=_optional_str(rest.get("src_field")) or "src",
        alt_field=_optional_str(rest.get("alt_field")) or "alt",
    )


__all__ = ["DEFAULT_LAYOUT_PATH", "load_layout"]
