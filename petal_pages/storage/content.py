"""The two on-disk snapshots of the content tree.

``preview`` (``data-preview.json``) is owned by the editor and rewritten on
every confirmed edit. ``production`` (``data.json``) is only overwritten when
the preview is promoted during publish. Writes are last-writer-wins; there
is no locking because one editor is assumed.
"""

from __future__ import annotations

import json
import logging
import typing as typ

from petal_pages._constants import PUBLISHED_DATA_BLOB

from .blobs import StorageError

if typ.TYPE_CHECKING:
    from pathlib import Path

    from petal_pages.config import SiteSettings

    from .blobs import BlobStore

logger = logging.getLogger(__name__)

ContentTree = dict[str, typ.Any]


def dump_tree(tree: ContentTree) -> str:
    """Serialise ``tree`` the way snapshots are stored: two-space indented JSON."""
    return json.dumps(tree, indent=2, ensure_ascii=False) + "\n"


class ContentStore:
    """Read and write the preview and production snapshots of one site."""

    def __init__(self, site: SiteSettings, *, blobs: BlobStore | None = None) -> None:
        """Bind the store to ``site``.

        Parameters
        ----------
        site : SiteSettings
            Locates ``data.json`` and ``data-preview.json``.
        blobs : BlobStore, optional
            Published artefacts; its ``data.json`` seeds the production
            snapshot when no local copy exists.
        """
        self.site = site
        self.blobs = blobs

    @property
    def production_path(self) -> Path:
        return self.site.data_path

    @property
    def preview_path(self) -> Path:
        return self.site.preview_path

    def load_production(self) -> ContentTree:
        """Return the production snapshot, falling back to the published copy."""
        tree = _read_json(self.production_path)
        if tree is not None:
            return tree
        if self.blobs is not None:
            raw = self.blobs.get(PUBLISHED_DATA_BLOB)
            if raw is not None:
                logger.info("Loaded production content from published %s", PUBLISHED_DATA_BLOB)
                try:
                    text = raw.decode("utf-8")
                except UnicodeDecodeError as exc:
                    msg = f"Published {PUBLISHED_DATA_BLOB} is not valid UTF-8: {exc}"
                    raise StorageError(msg) from exc
                return _parse(text, PUBLISHED_DATA_BLOB)
        msg = f"No production content found at {self.production_path}."
        raise StorageError(msg)

    def load_preview(self) -> ContentTree:
        """Return the preview snapshot, creating it from production if absent."""
        tree = _read_json(self.preview_path)
        if tree is not None:
            return tree
        logger.info("%s not found, creating it from production", self.preview_path.name)
        tree = self.load_production()
        self.save_preview(tree)
        return tree

    def save_preview(self, tree: ContentTree) -> None:
        _write_json(self.preview_path, tree)

    def save_production(self, tree: ContentTree) -> None:
        _write_json(self.production_path, tree)

    def reset_preview(self) -> ContentTree:
        """Discard unpublished edits by overwriting preview with production."""
        tree = self.load_production()
        self.save_preview(tree)
        return tree

    def promote(self) -> ContentTree:
        """Overwrite production with the preview snapshot and return it."""
        tree = self.load_preview()
        self.save_production(tree)
        logger.info("Promoted %s to %s", self.preview_path.name, self.production_path.name)
        return tree


def _parse(text: str, source: object) -> ContentTree:
    try:
        tree = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"Content snapshot {source} is not valid JSON: {exc}"
        raise StorageError(msg) from exc
    if not isinstance(tree, dict):
        msg = f"Content snapshot {source} must hold a JSON object."
        raise StorageError(msg)
    return tree


def _read_json(path: Path) -> ContentTree | None:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Unable to read content snapshot {path}: {exc}"
        raise StorageError(msg) from exc
    return _parse(text, path)


def _write_json(path: Path, tree: ContentTree) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_tree(tree), encoding="utf-8")
    except OSError as exc:
        msg = f"Unable to write content snapshot {path}: {exc}"
        raise StorageError(msg) from exc


__all__ = ["ContentStore", "ContentTree", "dump_tree"]
