"""Editor settings stored in ``~/.config/petal-pages/config.toml``.

Values are resolved from, in priority order, explicit keyword arguments (CLI
options), the environment, the TOML file, and built-in defaults. The file is
read and written with tomlkit so comments and ordering survive a round trip
when :func:`save_settings` records a value such as a discovered place id.
"""

from __future__ import annotations

import os
import typing as typ
from pathlib import Path

import tomlkit
import tomlkit.exceptions
import tomlkit.items

from .helpers import _optional_str
from .models import (
    ReviewSettings,
    Settings,
    SiteConfigError,
    SiteSettings,
    StorageSettings,
)

DEFAULT_CONFIG_PATH = Path(
    os.getenv(
        "PETAL_CONFIG_FILE",
        Path.home() / ".config" / "petal-pages" / "config.toml",
    )
)

# Config may hold storage secrets and API keys
_CONFIG_FILE_MODE = 0o600

_ENV_KEYS: dict[tuple[str, str], tuple[str, ...]] = {
    ("site", "root"): ("PETAL_SITE_ROOT",),
    ("site", "layout"): ("PETAL_LAYOUT_FILE",),
    ("storage", "bucket"): ("PETAL_BUCKET",),
    ("storage", "photos_bucket"): ("PETAL_PHOTOS_BUCKET",),
    ("storage", "endpoint"): ("AWS_S3_ENDPOINT", "AWS_ENDPOINT_URL_S3"),
    ("storage", "region"): ("AWS_DEFAULT_REGION",),
    ("storage", "access_key"): ("AWS_ACCESS_KEY_ID",),
    ("storage", "secret_key"): ("AWS_SECRET_ACCESS_KEY",),
    ("storage", "public_base_url"): ("PETAL_PUBLIC_BASE_URL",),
    ("reviews", "api_key"): ("GOOGLE_PLACES_API_KEY",),
    ("reviews", "place_id"): ("GOOGLE_PLACE_ID",),
    ("reviews", "website"): ("PETAL_WEBSITE",),
}


def _read_document(path: Path) -> tomlkit.TOMLDocument:
    try:
        return tomlkit.parse(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return tomlkit.document()
    except tomlkit.exceptions.ParseError as exc:
        msg = f"Unable to parse config TOML at {path}"
        raise SiteConfigError(msg) from exc
    except UnicodeDecodeError as exc:
        msg = f"Config TOML at {path} is not valid UTF-8"
        raise SiteConfigError(msg) from exc


def _as_dict(table: typ.Any) -> dict[str, typ.Any]:
    return {k: v for k, v in table.items()} if table else {}


def load_settings(
    path: Path = DEFAULT_CONFIG_PATH,
    *,
    overrides: typ.Mapping[tuple[str, str], object] | None = None,
) -> Settings:
    """Resolve editor settings from overrides, environment, and ``path``.

    Parameters
    ----------
    path : Path, optional
        TOML file to read; a missing file simply contributes nothing.
    overrides : Mapping[tuple[str, str], object], optional
        Explicit values keyed by ``(table, key)``, typically CLI options.
        ``None`` values are ignored so unset options fall through.

    Returns
    -------
    Settings
        Fully resolved settings.

    Examples
    --------
    >>> settings = load_settings(
    ...     Path("/nonexistent.toml"), overrides={("site", "root"): "site"}
    ... )  # doctest: +SKIP
    >>> settings.site.data_path  # doctest: +SKIP
    PosixPath('site/data.json')
    """
    document = _read_document(path)
    tables = {
        name: _as_dict(document.get(name)) for name in ("site", "storage", "reviews")
    }
    explicit = dict(overrides or {})

    def _value(table: str, key: str) -> str | None:
        candidate = explicit.get((table, key))
        if candidate is not None:
            return str(candidate)
        for env_name in _ENV_KEYS.get((table, key), ()):
            from_env = os.getenv(env_name)
            if from_env:
                return from_env
        return _optional_str(tables[table].get(key))

    site_defaults = SiteSettings()
    root = _value("site", "root")
    layout = _value("site", "layout")
    site = SiteSettings(
        root=Path(root).expanduser() if root else site_defaults.root,
        template=_value("site", "template") or site_defaults.template,
        data=_value("site", "data") or site_defaults.data,
        preview=_value("site", "preview") or site_defaults.preview,
        output=_value("site", "output") or site_defaults.output,
        layout=Path(layout).expanduser() if layout else None,
    )
    storage = StorageSettings(
        bucket=_value("storage", "bucket"),
        photos_bucket=_value("storage", "photos_bucket")
        or StorageSettings().photos_bucket,
        endpoint=_value("storage", "endpoint"),
        region=_value("storage", "region"),
        access_key=_value("storage", "access_key"),
        secret_key=_value("storage", "secret_key"),
        public_base_url=_value("storage", "public_base_url"),
    )
    reviews = ReviewSettings(
        api_key=_value("reviews", "api_key"),
        place_id=_value("reviews", "place_id"),
        website=_value("reviews", "website"),
    )
    return Settings(site=site, storage=storage, reviews=reviews)


def save_settings(
    values: typ.Mapping[tuple[str, str], str | None],
    *,
    path: Path = DEFAULT_CONFIG_PATH,
) -> None:
    """Persist ``(table, key) -> value`` pairs back into ``config.toml``.

    ``None`` removes the key. Existing tables, comments, and unrelated keys are
    preserved.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    document = _read_document(path)

    for (table_name, key), value in values.items():
        table = document.get(table_name)
        if not isinstance(table, tomlkit.items.Table):
            table = tomlkit.table()
        if value is None:
            table.pop(key, None)
        else:
            table[key] = value
        document[table_name] = table

    path.write_text(tomlkit.dumps(document), encoding="utf-8")
    os.chmod(path, _CONFIG_FILE_MODE)


__all__ = ["DEFAULT_CONFIG_PATH", "load_settings", "save_settings"]
