"""Unit tests for rendering the instrumented preview document."""

from __future__ import annotations

import pytest
from bs4 import BeautifulSoup

from petal_pages.build import BuildError
from petal_pages.config import LayoutConfig, SiteSettings
from petal_pages.preview import PreviewRenderer, inject_before
from petal_pages.storage import ContentStore


@pytest.fixture
def renderer(site: SiteSettings, store: ContentStore, layout: LayoutConfig) -> PreviewRenderer:
    return PreviewRenderer(site, store, layout, target_origin="http://localhost:8000")


def test_inject_before_uses_last_closing_tag() -> None:
    """Injection should target the last closing tag, ignoring case."""
    html = "<body><pre>&lt;/body&gt;</pre></BODY>"
    assert inject_before(html, "</body>", "<i>x</i>") == (
        "<body><pre>&lt;/body&gt;</pre><i>x</i></BODY>"
    )


def test_inject_before_without_tag() -> None:
    """Without the tag, head content is prepended and body content appended."""
    assert inject_before("<p>x</p>", "</body>", "S") == "<p>x</p>S"
    assert inject_before("<p>x</p>", "</head>", "S") == "S<p>x</p>"


def test_preview_renders_preview_snapshot(renderer: PreviewRenderer, store: ContentStore) -> None:
    """The preview should show unpublished edits with the bridge attached."""
    tree = store.load_preview()
    tree["hero"]["title"] = "Draft title"
    store.save_preview(tree)

    soup = BeautifulSoup(renderer.render(), "html.parser")
    title = soup.select_one("[data-edit-path='hero.title']")
    assert title.get_text() == "Draft title"
    assert soup.body["data-petal-edit-mode"] == "false"
    assert soup.select("script[data-petal-bridge]"), "expected the bridge script"
    assert not soup.select("script[data-petal-anchor]")


def test_bridge_script_is_configured(renderer: PreviewRenderer) -> None:
    """The bridge should embed the configured origin and edit mode."""
    script = renderer.bridge_script(edit_mode=True)
    assert 'var targetOrigin = "http://localhost:8000";' in script
    assert "editMode: true" in script
    assert '"data-edit-path"' in script
    assert '"webp"' in script


def test_bridge_only_accepts_messages_from_the_editor(renderer: PreviewRenderer) -> None:
    """Edit mode messages should be checked against the parent and origin."""
    script = renderer.bridge_script(edit_mode=False)
    listener = script[script.index('addEventListener("message"') :]
    assert listener.index("fromEditor(event)") < listener.index("state.editMode = data.enabled")
    assert "event.source !== window.parent" in script
    assert "event.origin === targetOrigin" in script


def test_anchor_script_escapes_values(renderer: PreviewRenderer) -> None:
    """Anchors should be embedded as escaped JSON, never raw markup."""
    script = renderer.anchor_script("#</script><b>")
    assert "getElementById(\"\\u003c/script\\u003e\\u003cb\\u003e\")" in script


def test_anchor_is_injected_into_head(renderer: PreviewRenderer) -> None:
    """The scroll script belongs in the head and the bridge in the body."""
    html = renderer.render(anchor="services", edit_mode=True)
    head, _, body = html.partition("</head>")
    assert "data-petal-anchor" in head
    assert 'getElementById("services")' in head
    assert "data-petal-bridge" in body


def test_explicit_tree_overrides_snapshot(renderer: PreviewRenderer, content: dict) -> None:
    """A supplied tree should be rendered in place of the stored preview."""
    content["about"]["customHtml"] = "<p>Custom about</p>"
    soup = BeautifulSoup(renderer.render(tree=content), "html.parser")
    about = soup.select_one("section#about")
    assert about.p.get_text() == "Custom about"
    assert about.select_one("button.edit-html-btn") is not None


def test_missing_template_raises_build_error(
    renderer: PreviewRenderer, site: SiteSettings
) -> None:
    """A missing template should raise ``BuildError``."""
    site.template_path.unlink()
    with pytest.raises(BuildError, match="Unable to read template"):
        renderer.render()


def test_undecodable_template_raises_build_error(
    renderer: PreviewRenderer, site: SiteSettings
) -> None:
    """A template that is not UTF-8 should raise ``BuildError``."""
    site.template_path.write_bytes(b"<h1>caf\xe9</h1>")
    with pytest.raises(BuildError, match="Unable to read template"):
        renderer.render()


def test_run_writes_output(renderer: PreviewRenderer, site: SiteSettings) -> None:
    """Running the renderer should write the preview document."""
    target = site.root / "out" / "preview.html"
    assert renderer.run(target, edit_mode=True) == target
    assert "data-petal-bridge" in target.read_text(encoding="utf-8")
