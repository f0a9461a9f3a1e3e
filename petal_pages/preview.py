"""Render the editable preview of the site.

The preview is the compiled preview snapshot, instrumented for editing, with
the client bridge script injected before ``</body>``. When the editor asks
to return to a section (after a save reloads the frame), a small script that
scrolls to that anchor is injected before ``</head>``.
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from ._constants import IMAGE_CONTENT_TYPES
from .build import BuildError
from .compiler import compile_template
from .instrument import instrument_document
from .instrument.instrumentor import INSTRUMENTATION_ATTRS, INSTRUMENTATION_CLASSES

if typ.TYPE_CHECKING:
    from .config import LayoutConfig, SiteSettings
    from .storage import ContentStore, ContentTree


def inject_before(html: str, closing_tag: str, snippet: str) -> str:
    """Insert ``snippet`` before the last ``closing_tag`` (case-insensitive).

    Documents without the tag get the snippet appended, or prepended for
    ``</head>``.
    """
    position = html.lower().rfind(closing_tag.lower())
    if position == -1:
        return snippet + html if closing_tag.lower() == "</head>" else html + snippet
    return html[:position] + snippet + html[position:]


class PreviewRenderer:
    """Build the instrumented preview document from the preview snapshot."""

    def __init__(
        self,
        site: SiteSettings,
        store: ContentStore,
        layout: LayoutConfig,
        *,
        templates_dir: Path | None = None,
        target_origin: str = "*",
    ) -> None:
        """Initialise the renderer and its Jinja environment.

        Parameters
        ----------
        site : SiteSettings
            Locates the site template.
        store : ContentStore
            Supplies the preview snapshot.
        layout : LayoutConfig
            Selector tables for section overrides and instrumentation.
        templates_dir : Path, optional
            Directory holding ``edit_bridge.jinja`` and
            ``scroll_anchor.jinja``. Defaults to ``petal_pages/templates``.
        target_origin : str, optional
            Origin the bridge posts messages to; ``"*"`` when the editor
            and preview are served from different origins during
            development.
        """
        self.site = site
        self.store = store
        self.layout = layout
        self.target_origin = target_origin
        self.templates_dir = templates_dir or Path(__file__).parent / "templates"
        self.env = Environment(
            loader=FileSystemLoader(self.templates_dir),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.bridge_template = self.env.get_template("edit_bridge.jinja")
        self.anchor_template = self.env.get_template("scroll_anchor.jinja")

    def bridge_script(self, *, edit_mode: bool = False) -> str:
        """Render the client bridge (styles and script) for the preview frame."""
        return self.bridge_template.render(
            target_origin=self.target_origin,
            edit_mode=edit_mode,
            instrumentation_attrs=list(INSTRUMENTATION_ATTRS),
            instrumentation_classes=list(INSTRUMENTATION_CLASSES),
            image_extensions=sorted(IMAGE_CONTENT_TYPES),
        )

    def anchor_script(self, anchor: str) -> str:
        return self.anchor_template.render(anchor=anchor.lstrip("#"))

    def render(
        self,
        *,
        anchor: str | None = None,
        edit_mode: bool = False,
        tree: ContentTree | None = None,
    ) -> str:
        """Return the preview document.

        Parameters
        ----------
        anchor : str, optional
            Element id to scroll to once the preview loads.
        edit_mode : bool, optional
            Whether editing controls start visible.
        tree : ContentTree, optional
            Content to render; defaults to the stored preview snapshot.

        Raises
        ------
        BuildError
            If the site template cannot be read.
        """
        try:
            template = self.site.template_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"Unable to read template {self.site.template_path}"
            raise BuildError(msg, str(exc)) from exc
        content = self.store.load_preview() if tree is None else tree
        html = compile_template(template, content, self.layout.sections)
        html = instrument_document(html, self.layout, edit_mode=edit_mode)
        html = inject_before(html, "</body>", self.bridge_script(edit_mode=edit_mode))
        if anchor:
            html = inject_before(html, "</head>", self.anchor_script(anchor))
        return html

    def run(self, output: Path, **options: typ.Any) -> Path:
        """Render the preview into ``output`` and return the path."""
        html = self.render(**options)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(html, encoding="utf-8")
        return output


__all__ = ["PreviewRenderer", "inject_before"]
