"""Load edit layouts and editor settings for the petal-pages editor.

Two kinds of configuration live here. The *layout* (YAML, read with
ruamel.yaml) lists which rendered elements map to which content paths and
which sections accept a custom-HTML override; a default layout for the stock
site ships with the package. The *settings* (TOML, read with tomlkit) locate
the site sources, the object storage, and the reviews API.

Examples
--------
>>> from petal_pages.config import load_layout
>>> layout = load_layout()
>>> layout.gallery.path
'portfolio.images'
"""

from .loader import DEFAULT_LAYOUT_PATH, load_layout
from .models import (
    GalleryConfig,
    ImageRule,
    LayoutConfig,
    ReviewSettings,
    SectionRule,
    Settings,
    SiteConfigError,
    SiteSettings,
    StorageSettings,
    TextRule,
)
from .settings import DEFAULT_CONFIG_PATH, load_settings, save_settings

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_LAYOUT_PATH",
    "GalleryConfig",
    "ImageRule",
    "LayoutConfig",
    "ReviewSettings",
    "SectionRule",
    "Settings",
    "SiteConfigError",
    "SiteSettings",
    "StorageSettings",
    "TextRule",
    "load_layout",
    "load_settings",
    "save_settings",
]
