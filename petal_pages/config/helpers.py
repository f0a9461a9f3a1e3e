"""Utility helpers shared by the layout and settings loaders."""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

from .models import SiteConfigError


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _required_str(payload: typ.Mapping[str, typ.Any], key: str, context: str) -> str:
    """Return ``payload[key]`` as a non-empty string or raise SiteConfigError."""
    value = _optional_str(payload.get(key))
    if value is None:
        msg = f"{context} requires a non-empty '{key}'."
        raise SiteConfigError(msg)
    return value


def _as_entries(value: object, context: str) -> list[typ.Mapping[str, typ.Any]]:
    """Return the mapping entries of a YAML list, rejecting other shapes."""
    match value:
        case None:
            return []
        case list() as items:
            pass
        case _:
            msg = f"{context} must be a list of mappings."
            raise SiteConfigError(msg)
    entries: list[typ.Mapping[str, typ.Any]] = []
    for item in items:
        if not isinstance(item, cabc.Mapping):
            msg = f"{context} entries must be mappings, got {type(item).__name__}."
            raise SiteConfigError(msg)
        entries.append(item)
    return entries


def _as_pairs(value: object, context: str) -> tuple[tuple[str, str], ...]:
    """Return an ordered tuple of ``(selector, path)`` pairs from a mapping."""
    if value is None:
        return ()
    if not isinstance(value, cabc.Mapping):
        msg = f"{context} must be a mapping of selector to path."
        raise SiteConfigError(msg)
    return tuple((str(key), str(path)) for key, path in value.items())


def _as_optional_paths(value: object, context: str) -> tuple[str | None, ...]:
    """Return a tuple of paths where YAML nulls mark skipped positions."""
    if value is None:
        return ()
    if not isinstance(value, list):
        msg = f"{context} must be a list of paths."
        raise SiteConfigError(msg)
    return tuple(_optional_str(item) for item in value)


def _as_bool(value: object) -> bool:
    """Interpret YAML/TOML/env flag values."""
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


__all__ = [
    "_as_bool",
    "_as_entries",
    "_as_optional_paths",
    "_as_pairs",
    "_optional_str",
    "_required_str",
]
