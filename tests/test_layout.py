"""Unit tests for loading the layout configuration."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from petal_pages.config import (
    DEFAULT_LAYOUT_PATH,
    GalleryConfig,
    SectionRule,
    SiteConfigError,
    load_layout,
)


def _write(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "layout.yaml"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


def test_default_layout_lists_sections_in_order() -> None:
    """The bundled layout should list sections in page order."""
    layout = load_layout()
    assert [rule.path for rule in layout.sections] == [
        "hero",
        "experience",
        "testimonial",
        "about",
        "services",
        "portfolio",
        "standards",
        "location",
        "contact",
    ]
    assert layout.section_for("about") == SectionRule(
        path="about", id="about", class_name="about-section"
    )
    assert layout.section_for("nope") is None
    assert layout.gallery == GalleryConfig(selector=".portfolio-grid", path="portfolio.images")


def test_default_layout_is_cached() -> None:
    """Loading the default layout twice should return one object."""
    assert load_layout() is load_layout(DEFAULT_LAYOUT_PATH)


def test_default_layout_text_rules_keep_derivations() -> None:
    """Text rules should keep their path derivations."""
    layout = load_layout()
    titles = next(rule for rule in layout.text_rules if rule.selector == ".section-title")
    assert dict(titles.by_section)["#about"] == "about.heading"
    about = next(rule for rule in layout.text_rules if rule.selector == ".about-text p")
    assert about.ordinal_paths == ("about.intro", "about.text")
    portfolio = next(rule for rule in layout.image_rules if rule.deletable)
    assert portfolio.path == "portfolio.images[{index}].src"
    assert portfolio.index_of == ".portfolio-item"


def test_custom_layout_is_parsed(tmp_path: Path) -> None:
    """A custom YAML layout should be read into rules."""
    path = _write(
        tmp_path,
        """
        sections:
          - {tag: div, class: promo, path: promo}
        text:
          - selector: ".promo h2"
            ordinal_paths: [promo.first, null, promo.third]
        images:
          - {selector: ".promo img", path: promo.image, deletable: "yes"}
        gallery:
          selector: ".photos"
          path: photos.items
          src_field: url
        """,
    )
    layout = load_layout(path)
    assert layout.sections == (SectionRule(path="promo", tag="div", class_name="promo"),)
    assert layout.text_rules[0].ordinal_paths == ("promo.first", None, "promo.third")
    assert layout.image_rules[0].deletable is True
    assert layout.gallery == GalleryConfig(
        selector=".photos", path="photos.items", src_field="url", alt_field="alt"
    )


def test_empty_layout_yields_empty_tables(tmp_path: Path) -> None:
    """An empty file should give empty tables."""
    layout = load_layout(_write(tmp_path, ""))
    assert layout.sections == ()
    assert layout.gallery is None


def test_missing_layout_file_raises(tmp_path: Path) -> None:
    """A missing layout file should raise ``FileNotFoundError``."""
    with pytest.raises(FileNotFoundError):
        load_layout(tmp_path / "absent.yaml")


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ("- just a list\n", "must be a mapping"),
        ("sections: {path: about}\n", "list of mappings"),
        ("sections:\n  - {path: about}\n", "needs an 'id' or a 'class'"),
        ("text:\n  - {selector: '.x'}\n", "needs 'path'"),
        ("text:\n  - {path: a.b}\n", "non-empty 'selector'"),
        ("images:\n  - {selector: img}\n", "non-empty 'path'"),
        ("gallery: {selector: '.grid'}\n", "requires 'selector' and 'path'"),
        ("text:\n  - {selector: '.x', by_section: [a]}\n", "mapping of selector"),
    ],
)
def test_invalid_layouts_are_rejected(tmp_path: Path, body: str, message: str) -> None:
    """Malformed layouts should raise ``SiteConfigError``."""
    with pytest.raises(SiteConfigError, match=message):
        load_layout(_write(tmp_path, body))
