"""Compile site templates against a JSON content tree.

:func:`compile_template` is the single entry point used by the build step,
the preview renderer, and the publish pipeline. It is pure and total: the
same template and tree always produce the same document, and malformed
template regions degrade to literal text instead of raising.

Passes run in a fixed order:

1. scalar placeholders (``{{path}}``),
2. iteration blocks (``{{#each path}}...{{/each}}``),
3. section overrides (``<section path>.customHtml``).

Examples
--------
>>> compile_template("{{#each items}}{{this.title}}{{/each}}",
...                  {"items": [{"title": "A"}, {"title": "B"}]}, sections=())
'AB'
>>> compile_template("<h1>{{site.missing}}</h1>", {}, sections=())
'<h1>{{site.missing}}</h1>'
"""

from __future__ import annotations

import typing as typ

from .placeholders import expand_placeholders, render_value
from .sections import (
    CUSTOM_HTML_KEY,
    apply_section_overrides,
    locate_section,
    replace_section,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from petal_pages.config import SectionRule


def compile_template(
    template: str,
    tree: object,
    sections: cabc.Iterable[SectionRule] | None = None,
) -> str:
    """Render ``template`` against ``tree`` into a finished HTML document.

    Parameters
    ----------
    template : str
        Template markup containing placeholders, iteration blocks, and
        overridable sections.
    tree : object
        Content tree, normally the parsed ``data.json`` mapping. It is only
        read, never modified.
    sections : Iterable[SectionRule], optional
        Ordered section table for the override pass. Defaults to the
        sections of the bundled layout; pass an empty tuple to disable
        overrides.

    Returns
    -------
    str
        The compiled document.
    """
    if sections is None:
        from petal_pages.config import load_layout

        sections = load_layout().sections
    html = expand_placeholders(template, tree)
    return apply_section_overrides(html, tree, sections)


__all__ = [
    "CUSTOM_HTML_KEY",
    "apply_section_overrides",
    "compile_template",
    "expand_placeholders",
    "locate_section",
    "render_value",
    "replace_section",
]
