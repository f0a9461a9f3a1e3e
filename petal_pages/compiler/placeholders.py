"""Placeholder and iteration-block expansion for site templates.

Two constructs are recognised:

``{{path}}``
    Replaced by the value at ``path`` in the content tree. Unresolved paths
    leave the placeholder untouched so half-filled content trees still render.
``{{#each path}} ... {{/each}}``
    Rendered once per element of the sequence at ``path``. Inside the block
    ``{{this.field}}`` reads from the element, ``{{this}}`` renders string
    elements, and ``{{@index}}`` yields the element's zero-based position.

The template is scanned once; values written into the output are never
re-scanned, so content that happens to contain ``{{...}}`` stays literal.
"""

from __future__ import annotations

import collections.abc as cabc
import json
import re

from petal_pages.paths import MISSING, get_path

EACH_BLOCK_PATTERN = re.compile(
    r"\{\{#each\s+([^}]+)\}\}(.*?)\{\{/each\}\}", re.DOTALL
)
PLACEHOLDER_PATTERN = re.compile(r"\{\{(.*?)\}\}")

_THIS = "this"
_THIS_PREFIX = "this."
_INDEX = "@index"


def render_value(value: object) -> str:
    """Render a content-tree value as template text.

    Examples
    --------
    >>> render_value(True), render_value(3.0), render_value(None)
    ('true', '3', '')
    """
    match value:
        case None:
            return ""
        case bool():
            return "true" if value else "false"
        case str():
            return value
        case int():
            return str(value)
        case float():
            return str(int(value)) if value.is_integer() else repr(value)
        case cabc.Mapping() | list() | tuple():
            return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        case _:
            return str(value)


def expand_placeholders(template: str, tree: object) -> str:
    """Expand scalar placeholders and iteration blocks in ``template``."""
    parts: list[str] = []
    cursor = 0
    for block in EACH_BLOCK_PATTERN.finditer(template):
        parts.append(_substitute(template[cursor : block.start()], tree))
        parts.append(_render_each(block, tree))
        cursor = block.end()
    parts.append(_substitute(template[cursor:], tree))
    return "".join(parts)


def _substitute(text: str, tree: object) -> str:
    def _repl(match: re.Match[str]) -> str:
        return _resolve_scalar(match, tree)

    return PLACEHOLDER_PATTERN.sub(_repl, text)


def _resolve_scalar(match: re.Match[str], tree: object) -> str:
    expr = match.group(1).strip()
    if not expr or expr[0] in "#/":
        return match.group(0)
    value = get_path(tree, expr)
    if value is MISSING:
        return match.group(0)
    return render_value(value)


def _render_each(block: re.Match[str], tree: object) -> str:
    items = get_path(tree, block.group(1).strip())
    if not isinstance(items, list):
        return ""
    body = block.group(2)
    return "".join(
        _render_item(body, tree, item, index) for index, item in enumerate(items)
    )


def _render_item(body: str, tree: object, item: object, index: int) -> str:
    def _repl(match: re.Match[str]) -> str:
        expr = match.group(1).strip()
        if expr == _THIS:
            return item if isinstance(item, str) else ""
        if expr.startswith(_THIS_PREFIX):
            return _render_field(item, expr[len(_THIS_PREFIX) :])
        if expr == _INDEX:
            return str(index)
        return _resolve_scalar(match, tree)

    return PLACEHOLDER_PATTERN.sub(_repl, body)


def _render_field(item: object, field: str) -> str:
    if not isinstance(item, cabc.Mapping):
        return ""
    value = get_path(item, field.strip())
    if value is MISSING:
        return ""
    return render_value(value)


__all__ = [
    "EACH_BLOCK_PATTERN",
    "PLACEHOLDER_PATTERN",
    "expand_placeholders",
    "render_value",
]
