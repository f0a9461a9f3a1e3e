"""Unit tests for applying document messages on the editor side."""

from __future__ import annotations

import json
import typing as typ
from pathlib import Path

import pytest

from petal_pages.config import LayoutConfig
from petal_pages.editor import EditorSession, reconcile_gallery_index
from petal_pages.protocol import ToggleEditMode
from petal_pages.storage import ContentStore, LocalBlobStore, PhotoLibrary, StorageError

if typ.TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.fixture
def photo_store(tmp_path: Path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "photos", public_base_url="https://photos.example")


@pytest.fixture
def editor(store: ContentStore, layout: LayoutConfig, photo_store: LocalBlobStore) -> EditorSession:
    return EditorSession(store, layout, photos=PhotoLibrary(photo_store))


def _preview(store: ContentStore) -> dict[str, typ.Any]:
    return json.loads(store.preview_path.read_text(encoding="utf-8"))


def test_set_edit_mode_returns_document_message(editor: EditorSession) -> None:
    """Switching edit mode should yield the message for the document."""
    assert editor.set_edit_mode(True) == ToggleEditMode(enabled=True)
    assert editor.edit_mode is True


def test_text_edit_updates_tree_and_preview(editor: EditorSession, store: ContentStore) -> None:
    """A text edit should reach the preview snapshot but not production."""
    outcome = editor.handle(
        {"type": "elementEdited", "path": "services.items[1].title", "newValue": "Parties"}
    )
    assert outcome is not None, "expected an outcome for a well-formed edit"
    assert outcome.applied is True
    assert editor.tree["services"]["items"][1]["title"] == "Parties"
    assert _preview(store)["services"]["items"][1]["title"] == "Parties"
    assert store.load_production()["services"]["items"][1]["title"] == "Events"


def test_text_edit_creates_missing_mappings(editor: EditorSession) -> None:
    """Editing an absent key should create it."""
    outcome = editor.handle({"type": "elementEdited", "path": "hero.tagline", "newValue": "Local"})
    assert outcome.applied is True
    assert editor.tree["hero"]["tagline"] == "Local"


def test_invalid_paths_are_reported_not_raised(editor: EditorSession, store: ContentStore) -> None:
    """A path that descends through a scalar should fail as an outcome."""
    outcome = editor.handle(
        {"type": "elementEdited", "path": "hero.title.text", "newValue": "x"}
    )
    assert outcome is not None
    assert outcome.applied is False
    assert "scalar" in outcome.detail
    assert not store.preview_path.exists() or _preview(store)["hero"]["title"] == "Fresh flowers"


def test_undecodable_snapshot_is_reported_not_raised(
    editor: EditorSession, store: ContentStore
) -> None:
    """A preview snapshot that is not UTF-8 should fail the edit softly."""
    store.preview_path.write_bytes(b'{"hero":{"title":"caf\xe9"}}')
    outcome = editor.handle({"type": "elementEdited", "path": "hero.title", "newValue": "Cafe"})
    assert outcome is not None
    assert outcome.applied is False, "a corrupt snapshot must not be edited"
    assert "utf-8" in outcome.detail
    assert store.preview_path.read_bytes() == b'{"hero":{"title":"caf\xe9"}}'


@pytest.mark.parametrize(
    "raw",
    ["{broken", '{"type":"formatDisk"}', '{"type":"elementEdited","newValue":"x"}'],
)
def test_undecodable_messages_are_dropped(editor: EditorSession, raw: str) -> None:
    """Malformed or unknown messages should be dropped without an outcome."""
    assert editor.handle(raw) is None


def test_image_upload_replaces_source(
    editor: EditorSession, photo_store: LocalBlobStore, store: ContentStore
) -> None:
    """An image drop should upload the file and point the path at it."""
    outcome = editor.handle(
        {
            "type": "imageUpload",
            "file": "data:image/png;base64,cG5n",
            "filename": "portfolio_1.png",
            "path": "hero.image.src",
        }
    )
    assert outcome.applied is True
    assert outcome.url == "https://photos.example/portfolio_1.png"
    assert photo_store.get("portfolio_1.png") == b"png"
    assert _preview(store)["hero"]["image"] == {"src": "portfolio_1.png", "alt": "Bouquet"}


def test_image_upload_without_photo_library_fails_softly(
    store: ContentStore, layout: LayoutConfig
) -> None:
    """Without a photo library, uploads should be refused and nothing changed."""
    editor = EditorSession(store, layout)
    outcome = editor.handle(
        {"type": "imageUpload", "file": "cG5n", "filename": "a.png", "path": "hero.image.src"}
    )
    assert outcome.applied is False
    assert editor.tree["hero"]["image"]["src"] == "hero.jpg"


def test_failed_upload_leaves_tree_unchanged(
    editor: EditorSession, mocker: MockerFixture
) -> None:
    """A storage failure during upload should not add a gallery item."""
    mocker.patch.object(PhotoLibrary, "upload", side_effect=StorageError("bucket offline"))
    outcome = editor.handle({"type": "addPortfolioImage", "file": "cG5n", "filename": "n.png"})
    assert outcome.applied is False
    assert outcome.detail == "bucket offline"
    assert len(editor.tree["portfolio"]["images"]) == 3


def test_gallery_drop_appends_item(editor: EditorSession) -> None:
    """A gallery drop should append a new item."""
    outcome = editor.handle(
        {"type": "addPortfolioImage", "file": "cG5n", "filename": "portfolio_9.png"}
    )
    assert outcome.applied is True
    assert editor.tree["portfolio"]["images"][-1] == {"src": "portfolio_9.png", "alt": ""}
    assert len(editor.tree["portfolio"]["images"]) == 4


def test_delete_prefers_filename_over_stale_index(editor: EditorSession) -> None:
    """The filename should win over an out-of-date index."""
    outcome = editor.handle({"type": "deletePortfolioImage", "index": 5, "filename": "b.jpg"})
    assert outcome.applied is True
    assert [item["src"] for item in editor.tree["portfolio"]["images"]] == ["a.jpg", "c.jpg"]


def test_delete_falls_back_to_index(editor: EditorSession) -> None:
    """An unknown filename should fall back to an in-range index."""
    outcome = editor.handle({"type": "deletePortfolioImage", "index": 0, "filename": "gone.jpg"})
    assert outcome.applied is True
    assert [item["src"] for item in editor.tree["portfolio"]["images"]] == ["b.jpg", "c.jpg"]


def test_delete_with_no_match_changes_nothing(editor: EditorSession) -> None:
    """With neither filename nor index matching, nothing should be deleted."""
    outcome = editor.handle({"type": "deletePortfolioImage", "index": 9, "filename": "gone.jpg"})
    assert outcome.applied is False
    assert len(editor.tree["portfolio"]["images"]) == 3


def test_section_html_waits_for_confirmation(editor: EditorSession, store: ContentStore) -> None:
    """Section markup should only be stored once it is confirmed."""
    outcome = editor.handle(
        {"type": "editSectionHtml", "sectionPath": "about", "html": "<p>Current</p>"}
    )
    assert outcome.applied is False
    assert outcome.pending_section == ("about", "<p>Current</p>")
    assert "customHtml" not in editor.tree["about"]

    editor.save_section_html("about", "<p>Custom</p>")
    assert _preview(store)["about"]["customHtml"] == "<p>Custom</p>"

    editor.clear_section_html("about")
    assert "customHtml" not in _preview(store)["about"]


def test_reload_reads_the_snapshot_again(editor: EditorSession, store: ContentStore) -> None:
    """The cached tree should only change after an explicit reload."""
    editor.handle({"type": "elementEdited", "path": "hero.title", "newValue": "Edited"})
    store.reset_preview()
    assert editor.tree["hero"]["title"] == "Edited"
    assert editor.reload()["hero"]["title"] == "Fresh flowers"


def test_reconcile_matches_basenames_and_plain_strings() -> None:
    """Gallery items should match by basename whatever their shape."""
    items = [{"src": "https://cdn/x/a.jpg?v=1"}, "b.jpg", {"url": "c.jpg"}]
    assert reconcile_gallery_index(items, None, "a.jpg") == 0
    assert reconcile_gallery_index(items, None, "/img/b.jpg") == 1
    assert reconcile_gallery_index(items, None, "c.jpg", src_field="url") == 2
    assert reconcile_gallery_index(items, None, None) is None
    assert reconcile_gallery_index(items, -1, None) is None
