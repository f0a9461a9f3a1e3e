from __future__ import annotations

import json
import shutil
import typing as typ
from pathlib import Path

import pytest

from petal_pages.compiler import compile_template
from petal_pages.config import LayoutConfig, SiteSettings, load_layout
from petal_pages.storage import ContentStore

FIXTURE_SITE = Path(__file__).resolve().parent / "fixtures" / "site"

_SETTINGS_ENV = (
    "PETAL_SITE_ROOT",
    "PETAL_LAYOUT_FILE",
    "PETAL_BUCKET",
    "PETAL_PHOTOS_BUCKET",
    "PETAL_PUBLIC_BASE_URL",
    "PETAL_WEBSITE",
    "AWS_S3_ENDPOINT",
    "AWS_ENDPOINT_URL_S3",
    "AWS_DEFAULT_REGION",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "GOOGLE_PLACES_API_KEY",
    "GOOGLE_PLACE_ID",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    target = tmp_path / "site"
    shutil.copytree(FIXTURE_SITE, target)
    return target


@pytest.fixture
def site(site_dir: Path) -> SiteSettings:
    return SiteSettings(root=site_dir)


@pytest.fixture
def store(site: SiteSettings) -> ContentStore:
    return ContentStore(site)


@pytest.fixture
def layout() -> LayoutConfig:
    return load_layout()


@pytest.fixture
def content() -> dict[str, typ.Any]:
    return json.loads((FIXTURE_SITE / "data.json").read_text(encoding="utf-8"))


@pytest.fixture
def template() -> str:
    return (FIXTURE_SITE / "index.template.html").read_text(encoding="utf-8")


@pytest.fixture
def compiled(template: str, content: dict[str, typ.Any]) -> str:
    return compile_template(template, content)
