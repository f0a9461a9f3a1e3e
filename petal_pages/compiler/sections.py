"""Replace the inner markup of named sections with editor-supplied HTML.

A section is located by walking the parsed document (the same
``html.parser`` event stream BeautifulSoup builds its trees from) rather
than by pattern-matching the markup, so attribute order, extra classes, and
nested elements of the same name are handled. BeautifulSoup trees do not
record where an element ends, and re-serialising a tree normalises unrelated
markup (void tags, entities), so the located inner range is spliced into the
original text instead. Everything outside the overridden range stays
byte-identical.
"""

from __future__ import annotations

import logging
import typing as typ
from html.parser import HTMLParser

from petal_pages.paths import get_path

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from petal_pages.config import SectionRule

logger = logging.getLogger(__name__)

CUSTOM_HTML_KEY = "customHtml"


class _SectionLocator(HTMLParser):
    """Find the inner character range of the first element matching a rule."""

    def __init__(self, source: str, rule: SectionRule) -> None:
        super().__init__(convert_charrefs=True)
        self._rule = rule
        self._tag = rule.tag.lower()
        self._line_starts = [0]
        for index, char in enumerate(source):
            if char == "\n":
                self._line_starts.append(index + 1)
        self._depth = 0
        self.inner_start: int | None = None
        self.inner_end: int | None = None

    def _offset(self) -> int:
        line, column = self.getpos()
        return self._line_starts[line - 1] + column

    @property
    def found(self) -> bool:
        return self.inner_start is not None and self.inner_end is not None

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if self.inner_end is not None or tag != self._tag:
            return
        if self.inner_start is not None:
            self._depth += 1
            return
        if self._matches(attrs):
            start_tag = self.get_starttag_text() or ""
            self.inner_start = self._offset() + len(start_tag)
            self._depth = 1

    def handle_endtag(self, tag: str) -> None:
        if self.inner_start is None or self.inner_end is not None or tag != self._tag:
            return
        self._depth -= 1
        if self._depth == 0:
            self.inner_end = self._offset()

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        # A self-closing element has no inner range and never changes depth.
        return

    def _matches(self, attrs: list[tuple[str, str | None]]) -> bool:
        values = {name: value or "" for name, value in attrs}
        if self._rule.id and values.get("id", "").strip() != self._rule.id:
            return False
        if self._rule.class_name:
            return self._rule.class_name in values.get("class", "").split()
        return True


def locate_section(html: str, rule: SectionRule) -> tuple[int, int] | None:
    """Return the ``(start, end)`` offsets of the inner markup matching ``rule``.

    Only the first matching element is considered. ``None`` means no element
    with both a start and an end tag matched.
    """
    locator = _SectionLocator(html, rule)
    locator.feed(html)
    locator.close()
    if not locator.found:
        return None
    return typ.cast("int", locator.inner_start), typ.cast("int", locator.inner_end)


def replace_section(html: str, rule: SectionRule, inner_html: str) -> str:
    """Return ``html`` with the inner markup of the section matching ``rule`` replaced."""
    span = locate_section(html, rule)
    if span is None:
        return html
    start, end = span
    return html[:start] + inner_html + html[end:]


def apply_section_overrides(
    html: str, tree: object, sections: cabc.Iterable[SectionRule]
) -> str:
    """Apply every non-empty ``<path>.customHtml`` override in table order.

    Sections without an override, or whose element cannot be found, are left
    untouched. Applying the overrides again with the same tree yields the same
    document.
    """
    for rule in sections:
        custom = get_path(tree, f"{rule.path}.{CUSTOM_HTML_KEY}")
        if not isinstance(custom, str) or not custom:
            continue
        span = locate_section(html, rule)
        if span is None:
            logger.debug("No element matches section %s (%s)", rule.path, rule.selector)
            continue
        start, end = span
        html = html[:start] + custom + html[end:]
        logger.debug("Using custom HTML for %s section", rule.path)
    return html


__all__ = [
    "CUSTOM_HTML_KEY",
    "apply_section_overrides",
    "locate_section",
    "replace_section",
]
