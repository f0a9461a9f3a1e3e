"""Cyclopts CLI entrypoint for building, previewing, and publishing the site.

The ``petal`` console script compiles the production snapshot (``petal
build``, also what the publish pipeline runs in a child process), renders
the editable preview (``petal preview``), publishes preview content to the
storage bucket (``petal publish``), and wraps the supporting services: the
photo library and the Google Places reviews.

Settings come from ``~/.config/petal-pages/config.toml`` (or
``PETAL_CONFIG_FILE``), overridden by environment variables and then by
command-line options.

Examples
--------
Build the site from the current directory:

>>> from petal_pages.cli import app
>>> app(["build", "--root", "."])  # doctest: +SKIP

Look up and remember the place id for the reviews section:

>>> app(["place-id", "--website", "example.com", "--save"])  # doctest: +SKIP
"""

from __future__ import annotations

import logging
import os
import sys
import typing as typ
from pathlib import Path

from cyclopts import App, Parameter

from .build import BuildError, SiteBuilder, SubprocessBuilder
from .config import (
    DEFAULT_CONFIG_PATH,
    LayoutConfig,
    Settings,
    SiteConfigError,
    load_layout,
    load_settings,
    save_settings,
)
from .preview import PreviewRenderer
from .publish import PublishPipeline
from .reviews import PlacesApiError, PlacesClient
from .storage import ContentStore, PhotoLibrary, S3BlobStore, StorageError

if typ.TYPE_CHECKING:
    from .storage import BlobStore

app = App(name="petal", help="Edit, preview, and publish the petal-pages site.")

ConfigOption = typ.Annotated[
    Path,
    Parameter(help="Path to the settings TOML", env_var="PETAL_CONFIG_FILE"),
]
RootOption = typ.Annotated[
    Path | None,
    Parameter(help="Directory holding the site template and data"),
]

_USER_ERRORS = (SiteConfigError, StorageError, BuildError, PlacesApiError)


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:
            return str(path)
    return str(path)


def _settings(config: Path, root: Path | None = None) -> Settings:
    return load_settings(config, overrides={("site", "root"): root})


def _layout(settings: Settings) -> LayoutConfig:
    return load_layout(settings.site.layout)


def _site_blobs(settings: Settings, *, required: bool = False) -> BlobStore | None:
    if not settings.storage.bucket and not required:
        return None
    return S3BlobStore.from_settings(settings.storage)


def _places_client(settings: Settings) -> PlacesClient:
    if not settings.reviews.api_key:
        msg = "No Places API key configured; set [reviews] api_key or GOOGLE_PLACES_API_KEY."
        raise SiteConfigError(msg)
    return PlacesClient(settings.reviews.api_key)


@app.command(help="Compile production content into the site document.")
def build(
    *,
    root: RootOption = None,
    output: typ.Annotated[
        Path | None, Parameter(help="Override the output document path")
    ] = None,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
) -> None:
    """Compile ``data.json`` against the site template.

    Parameters
    ----------
    root : Path or None, optional
        Site directory; overrides ``[site] root``.
    output : Path or None, optional
        Where to write the document; defaults to ``<root>/index.html``.
    config : Path, optional
        Settings file to read.

    Returns
    -------
    None
        Prints the written path.
    """
    settings = _settings(config, root)
    store = ContentStore(settings.site, blobs=_site_blobs(settings))
    builder = SiteBuilder(
        settings.site, store, sections=_layout(settings).sections, output=output
    )
    path = builder.build()
    print(f"wrote {_format_path(path)}")


@app.command(help="Write the instrumented preview document.")
def preview(
    *,
    root: RootOption = None,
    output: typ.Annotated[
        Path | None, Parameter(help="Where to write the preview HTML")
    ] = None,
    anchor: typ.Annotated[
        str | None, Parameter(help="Section id to scroll to on load")
    ] = None,
    edit_mode: typ.Annotated[
        bool, Parameter(help="Start with editing controls visible")
    ] = False,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
) -> None:
    """Render the preview snapshot with editing instrumentation."""
    settings = _settings(config, root)
    store = ContentStore(settings.site, blobs=_site_blobs(settings))
    renderer = PreviewRenderer(settings.site, store, _layout(settings))
    target = output or settings.site.root / "preview.html"
    path = renderer.run(target, anchor=anchor, edit_mode=edit_mode)
    print(f"wrote {_format_path(path)}")


@app.command(help="Promote preview content, rebuild, and upload the site.")
def publish(
    *,
    root: RootOption = None,
    timeout: typ.Annotated[
        float, Parameter(help="Seconds to allow the build to run")
    ] = 120.0,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
) -> None:
    """Run the publish pipeline and report the stage it reached.

    Raises
    ------
    SystemExit
        With status 1 when the pipeline did not upload the document.
    """
    settings = _settings(config, root)
    blobs = typ.cast("BlobStore", _site_blobs(settings, required=True))
    store = ContentStore(settings.site, blobs=blobs)
    builder = SubprocessBuilder(settings.site, config_path=config, timeout=timeout)
    result = PublishPipeline(store, builder, blobs).run()
    for warning in result.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    print(f"{result.stage.name.lower()}: {result.message}")
    if result.url:
        print(f"published {result.url}")
    if not result.ok:
        if result.diagnostics:
            print(result.diagnostics, file=sys.stderr)
        raise SystemExit(1)


@app.command(help="Discard unpublished edits by resetting preview to production.")
def reset(*, root: RootOption = None, config: ConfigOption = DEFAULT_CONFIG_PATH) -> None:
    settings = _settings(config, root)
    store = ContentStore(settings.site, blobs=_site_blobs(settings))
    store.reset_preview()
    print(f"reset {_format_path(store.preview_path)} to production content")


@app.command(help="List photos in the photo library.")
def photos(*, config: ConfigOption = DEFAULT_CONFIG_PATH) -> None:
    settings = _settings(config)
    library = PhotoLibrary(
        S3BlobStore.from_settings(settings.storage, bucket=settings.storage.photos_bucket)
    )
    entries = library.list()
    for photo in entries:
        print(f"{photo.name}\t{photo.url}")
    if not entries:
        print("no photos found")


@app.command(help="Print Google reviews for the configured place.")
def reviews(
    *,
    place_id: typ.Annotated[
        str | None, Parameter(help="Override the configured place id")
    ] = None,
    min_rating: typ.Annotated[
        int | None, Parameter(help="Only show reviews rated at least this")
    ] = None,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
) -> None:
    """Print reviews; API failures print nothing rather than erroring."""
    settings = _settings(config)
    target = place_id or settings.reviews.place_id
    if not target:
        msg = "No place id configured; run `petal place-id --save` or set GOOGLE_PLACE_ID."
        raise SiteConfigError(msg)
    found = _places_client(settings).fetch_reviews(target, min_rating=min_rating)
    for review in found:
        stars = "*" * review.rating
        print(f"{stars} {review.author_name}: {review.text}")
    if not found:
        print("no reviews found")


@app.command(name="place-id", help="Find the Google place id for a website.")
def place_id(
    *,
    website: typ.Annotated[
        str | None, Parameter(help="Website domain to search for")
    ] = None,
    save: typ.Annotated[
        bool, Parameter(help="Store the place id in the settings file")
    ] = False,
    config: ConfigOption = DEFAULT_CONFIG_PATH,
) -> None:
    """Look up the place id by website domain, optionally saving it."""
    settings = _settings(config)
    domain = website or settings.reviews.website
    if not domain:
        msg = "Pass --website or set [reviews] website."
        raise SiteConfigError(msg)
    found = _places_client(settings).find_place_id(domain)
    if found is None:
        print(f"no place found for {domain}")
        raise SystemExit(1)
    label = found.name or "unnamed place"
    note = "" if found.matched_website else " (best guess: website did not match)"
    print(f"{found.place_id}\t{label}{note}")
    if save:
        save_settings(
            {("reviews", "place_id"): found.place_id, ("reviews", "website"): domain},
            path=config,
        )
        print(f"saved place id to {_format_path(config)}")


def main() -> None:
    """Invoke the Cyclopts application that powers the ``petal`` console command.

    Logging is configured from ``PETAL_LOG_LEVEL`` (default ``WARNING``).
    Configuration, storage, build, and API errors are reported on stderr
    with exit status 1 instead of a traceback.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    logging.basicConfig(
        level=os.getenv("PETAL_LOG_LEVEL", "WARNING").upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        app()
    except _USER_ERRORS as exc:
        print(f"error: {exc}", file=sys.stderr)
        diagnostics = getattr(exc, "diagnostics", "")
        if diagnostics:
            print(diagnostics, file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
