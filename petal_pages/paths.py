"""Dotted-path addressing over the JSON content tree.

Edit paths are the addresses the template, the instrumented preview, and the
editor all agree on. A path is a sequence of ``.``-separated segments where
each segment may carry one or more bracketed integer indices addressing a
sequence element, for example ``services.items[2].title``.

Reads are pure and never raise: anything that cannot be resolved comes back
as :data:`MISSING`. Writes create intermediate mappings on demand but refuse
to deepen a scalar or to grow a sequence implicitly; sequence mutation goes
through :func:`insert_item` and :func:`delete_item`.

Examples
--------
>>> tree = {"services": {"items": [{"title": "Weddings"}]}}
>>> get_path(tree, "services.items[0].title")
'Weddings'
>>> get_path(tree, "services.items[3].title") is MISSING
True
>>> set_path(tree, "hero.title", "Fresh flowers")["hero"]
{'title': 'Fresh flowers'}
"""

from __future__ import annotations

import collections.abc as cabc
import re
import typing as typ

Segment = str | int

_SEGMENT_PATTERN = re.compile(r"^(?P<key>[^\[\]]*)(?P<indices>(?:\[[^\[\]]*\])*)$")
_INDEX_PATTERN = re.compile(r"\[([^\[\]]*)\]")


class PathError(ValueError):
    """Raised when an edit path is malformed or cannot be written."""


class _Missing:
    """Sentinel type marking an unresolved path."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: typ.Final = _Missing()


def parse_path(path: str) -> tuple[Segment, ...]:
    """Split ``path`` into mapping keys and sequence indices.

    Parameters
    ----------
    path : str
        Dotted edit path such as ``portfolio.images[4].src``.

    Returns
    -------
    tuple[str | int, ...]
        Keys as strings and bracketed indices as integers, in order.

    Raises
    ------
    PathError
        If the path is empty, contains an empty segment, or carries an
        unterminated or non-integer bracket.
    """
    text = path.strip() if isinstance(path, str) else ""
    if not text:
        msg = "Edit path cannot be empty."
        raise PathError(msg)

    segments: list[Segment] = []
    for raw in text.split("."):
        match = _SEGMENT_PATTERN.match(raw.strip())
        if match is None:
            msg = f"Malformed segment '{raw}' in path '{path}'."
            raise PathError(msg)
        key = match.group("key")
        indices = _INDEX_PATTERN.findall(match.group("indices"))
        if key:
            segments.append(key)
        elif not indices:
            msg = f"Empty segment in path '{path}'."
            raise PathError(msg)
        for index in indices:
            stripped = index.strip()
            if not stripped.isdigit():
                msg = f"Index '{index}' in path '{path}' is not a non-negative integer."
                raise PathError(msg)
            segments.append(int(stripped))
    return tuple(segments)


def get_path(tree: object, path: str, default: object = MISSING) -> typ.Any:
    """Return the value stored at ``path`` or ``default`` when it is absent."""
    try:
        segments = parse_path(path)
    except PathError:
        return default
    current: typ.Any = tree
    for segment in segments:
        current = _step(current, segment)
        if current is MISSING:
            return default
    return current


def set_path(tree: cabc.MutableMapping[str, typ.Any], path: str, value: object) -> typ.Any:
    """Write ``value`` at ``path`` in place and return ``tree``.

    Raises
    ------
    PathError
        If an intermediate segment holds a scalar, a sequence is addressed by
        key, or an index falls outside an existing sequence.
    """
    segments = parse_path(path)
    parent = _walk_for_write(tree, segments[:-1], path)
    _assign(parent, segments[-1], value, path)
    return tree


def delete_path(tree: cabc.MutableMapping[str, typ.Any], path: str) -> typ.Any:
    """Remove the mapping key addressed by ``path``; missing keys are ignored."""
    segments = parse_path(path)
    parent = get_path(tree, _join(segments[:-1])) if len(segments) > 1 else tree
    last = segments[-1]
    if isinstance(parent, cabc.MutableMapping) and isinstance(last, str):
        parent.pop(last, None)
    return tree


def insert_item(
    tree: cabc.MutableMapping[str, typ.Any],
    path: str,
    item: object,
    index: int | None = None,
) -> int:
    """Insert ``item`` into the sequence at ``path`` and return its position.

    The sequence is created only when ``path`` is entirely absent; any other
    non-sequence value raises :class:`PathError`.
    """
    target = get_path(tree, path)
    if target is MISSING:
        set_path(tree, path, [])
        target = get_path(tree, path)
    if not isinstance(target, list):
        msg = f"Cannot insert into '{path}': it does not hold a sequence."
        raise PathError(msg)
    position = len(target) if index is None else max(0, min(index, len(target)))
    target.insert(position, item)
    return position


def delete_item(tree: cabc.MutableMapping[str, typ.Any], path: str, index: int) -> typ.Any:
    """Remove and return the element at ``index`` of the sequence at ``path``."""
    target = get_path(tree, path)
    if not isinstance(target, list):
        msg = f"Cannot delete from '{path}': it does not hold a sequence."
        raise PathError(msg)
    if not 0 <= index < len(target):
        msg = f"Index {index} is out of range for '{path}' ({len(target)} items)."
        raise PathError(msg)
    return target.pop(index)


def format_path(*segments: Segment) -> str:
    """Join segments back into dotted/bracketed notation."""
    return _join(segments)


def _join(segments: cabc.Sequence[Segment]) -> str:
    text = ""
    for segment in segments:
        if isinstance(segment, int):
            text += f"[{segment}]"
        else:
            text = f"{text}.{segment}" if text else segment
    return text


def _step(current: object, segment: Segment) -> typ.Any:
    match current:
        case cabc.Mapping():
            if isinstance(segment, int):
                return MISSING
            return current.get(segment, MISSING)
        case list() | tuple():
            position = _as_index(segment)
            if position is None or position >= len(current):
                return MISSING
            return current[position]
        case _:
            return MISSING


def _as_index(segment: Segment) -> int | None:
    if isinstance(segment, int):
        return segment
    if segment.isdigit():
        return int(segment)
    return None


def _walk_for_write(
    tree: cabc.MutableMapping[str, typ.Any], segments: cabc.Sequence[Segment], path: str
) -> typ.Any:
    current: typ.Any = tree
    for depth, segment in enumerate(segments):
        following = segments[depth + 1] if depth + 1 < len(segments) else None
        nxt = _step(current, segment)
        if nxt is MISSING or nxt is None:
            if isinstance(current, list) or isinstance(segment, int):
                msg = f"Cannot create sequence element '{_join(segments[: depth + 1])}' in path '{path}'."
                raise PathError(msg)
            if not isinstance(current, cabc.MutableMapping):
                msg = f"Cannot write through a scalar at '{_join(segments[:depth])}' in path '{path}'."
                raise PathError(msg)
            if isinstance(following, int):
                msg = f"Cannot create sequence '{_join(segments[: depth + 1])}' implicitly in path '{path}'."
                raise PathError(msg)
            nxt = {}
            current[segment] = nxt
        elif not isinstance(nxt, (cabc.MutableMapping, list)):
            msg = f"Segment '{_join(segments[: depth + 1])}' holds a scalar; cannot deepen it in path '{path}'."
            raise PathError(msg)
        current = nxt
    return current


def _assign(parent: object, segment: Segment, value: object, path: str) -> None:
    match parent:
        case cabc.MutableMapping():
            if isinstance(segment, int):
                msg = f"Cannot index a mapping with [{segment}] in path '{path}'."
                raise PathError(msg)
            parent[segment] = value
        case list():
            position = _as_index(segment)
            if position is None or position >= len(parent):
                msg = f"Index '{segment}' is out of range in path '{path}'."
                raise PathError(msg)
            parent[position] = value
        case _:
            msg = f"Cannot write '{path}': parent is not a container."
            raise PathError(msg)


__all__ = [
    "MISSING",
    "PathError",
    "delete_item",
    "delete_path",
    "format_path",
    "get_path",
    "insert_item",
    "parse_path",
    "set_path",
]
