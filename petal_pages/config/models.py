"""Typed dataclasses describing edit layouts and editor settings."""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path


class SiteConfigError(ValueError):
    """Raised when a layout or settings file is invalid or incomplete."""


@dc.dataclass(slots=True, frozen=True)
class SectionRule:
    """Locate a named section whose inner markup may be overridden.

    Attributes
    ----------
    path : str
        Content path of the section; its override lives at
        ``<path>.customHtml``.
    tag : str
        Element name to match (``section`` on the default site).
    id : str | None
        Required ``id`` attribute value, if any.
    class_name : str | None
        Class token the element must carry, if any.
    """

    path: str
    tag: str = "section"
    id: str | None = None
    class_name: str | None = None

    @property
    def selector(self) -> str:
        """Return the equivalent CSS selector."""
        selector = self.tag
        if self.id:
            selector += f"#{self.id}"
        if self.class_name:
            selector += f".{self.class_name}"
        return selector


@dc.dataclass(slots=True, frozen=True)
class TextRule:
    """Map elements matching ``selector`` to the text they were rendered from.

    Exactly one derivation applies, checked in this order: ``by_section``
    picks a path from the closest enclosing section, ``ordinal_paths`` picks
    by position among matching siblings, and ``path`` is used as is or, when
    it contains ``{index}``, formatted with the element's position.
    """

    selector: str
    path: str | None = None
    by_section: tuple[tuple[str, str], ...] = ()
    ordinal_paths: tuple[str | None, ...] = ()
    index_of: str | None = None
    within: str | None = None


@dc.dataclass(slots=True, frozen=True)
class ImageRule:
    """Map images matching ``selector`` to their ``src`` edit path."""

    selector: str
    path: str
    index_of: str | None = None
    within: str | None = None
    deletable: bool = False


@dc.dataclass(slots=True, frozen=True)
class GalleryConfig:
    """Container that accepts dropped images as new sequence items."""

    selector: str
    path: str
    src_field: str = "src"
    alt_field: str = "alt"


@dc.dataclass(slots=True, frozen=True)
class LayoutConfig:
    """Selector tables shared by the compiler, instrumentor, and editor."""

    text_rules: tuple[TextRule, ...] = ()
    image_rules: tuple[ImageRule, ...] = ()
    sections: tuple[SectionRule, ...] = ()
    gallery: GalleryConfig | None = None

    def section_for(self, path: str) -> SectionRule | None:
        """Return the section rule registered for ``path``, if any."""
        return next((rule for rule in self.sections if rule.path == path), None)


@dc.dataclass(slots=True)
class SiteSettings:
    """Filesystem locations of the site sources and build output."""

    root: Path = Path()
    template: str = "index.template.html"
    data: str = "data.json"
    preview: str = "data-preview.json"
    output: str = "index.html"
    layout: Path | None = None

    @property
    def template_path(self) -> Path:
        return self.root / self.template

    @property
    def data_path(self) -> Path:
        return self.root / self.data

    @property
    def preview_path(self) -> Path:
        return self.root / self.preview

    @property
    def output_path(self) -> Path:
        return self.root / self.output


@dc.dataclass(slots=True)
class StorageSettings:
    """Object storage used for published artefacts and the photo library."""

    bucket: str | None = None
    photos_bucket: str = "photos"
    endpoint: str | None = None
    region: str | None = None
    access_key: str | None = None
    secret_key: str | None = None
    public_base_url: str | None = None


@dc.dataclass(slots=True)
class ReviewSettings:
    """Credentials and identifiers for the place-reviews API."""

    api_key: str | None = None
    place_id: str | None = None
    website: str | None = None


@dc.dataclass(slots=True)
class Settings:
    """Aggregate editor settings loaded from ``config.toml``."""

    site: SiteSettings = dc.field(default_factory=SiteSettings)
    storage: StorageSettings = dc.field(default_factory=StorageSettings)
    reviews: ReviewSettings = dc.field(default_factory=ReviewSettings)


__all__ = [
    "GalleryConfig",
    "ImageRule",
    "LayoutConfig",
    "ReviewSettings",
    "SectionRule",
    "Settings",
    "SiteConfigError",
    "SiteSettings",
    "StorageSettings",
    "TextRule",
]
