"""Unit tests for the in-process and subprocess site builders."""

from __future__ import annotations

import subprocess
import sys
import typing as typ
from pathlib import Path
from types import SimpleNamespace

import pytest

from petal_pages import build as build_module
from petal_pages.build import BuildError, SiteBuilder, SubprocessBuilder
from petal_pages.config import SiteSettings
from petal_pages.storage import ContentStore


def test_site_builder_compiles_production(site: SiteSettings, store: ContentStore) -> None:
    """The builder should write the template compiled against production."""
    output = SiteBuilder(site, store).build()
    assert output == site.output_path
    html = output.read_text(encoding="utf-8")
    assert "<h1 class=\"hero-title\">Fresh flowers</h1>" in html
    assert "{{" not in html, "no placeholder should survive compilation"


def test_site_builder_ignores_preview_edits(site: SiteSettings, store: ContentStore) -> None:
    """Unpublished preview edits must not leak into the built site."""
    tree = store.load_preview()
    tree["hero"]["title"] = "Unpublished"
    store.save_preview(tree)
    html = SiteBuilder(site, store).build().read_text(encoding="utf-8")
    assert "Unpublished" not in html


def test_site_builder_writes_to_custom_output(
    site: SiteSettings, store: ContentStore, tmp_path: Path
) -> None:
    """An explicit output path should be created and returned."""
    target = tmp_path / "dist" / "index.html"
    assert SiteBuilder(site, store, sections=(), output=target).build() == target
    assert target.is_file()


def test_site_builder_reports_missing_inputs(site: SiteSettings, store: ContentStore) -> None:
    """Missing template or content should raise ``BuildError`` with diagnostics."""
    site.template_path.unlink()
    with pytest.raises(BuildError, match="Unable to read template") as excinfo:
        SiteBuilder(site, store).build()
    assert excinfo.value.diagnostics

    site.template_path.write_text("<p>{{site.title}}</p>", encoding="utf-8")
    site.data_path.unlink()
    with pytest.raises(BuildError, match="production content"):
        SiteBuilder(site, store).build()


def test_site_builder_reports_undecodable_inputs(site: SiteSettings, store: ContentStore) -> None:
    """Template or content bytes that are not UTF-8 should raise ``BuildError``."""
    site.template_path.write_bytes(b"<h1>caf\xe9</h1>")
    with pytest.raises(BuildError, match="Unable to read template"):
        SiteBuilder(site, store).build()

    site.template_path.write_text("<p>{{site.title}}</p>", encoding="utf-8")
    site.data_path.write_bytes(b'{"site":{"title":"caf\xe9"}}')
    with pytest.raises(BuildError, match="production content") as excinfo:
        SiteBuilder(site, store).build()
    assert "utf-8" in excinfo.value.diagnostics


def test_default_command_runs_the_build_module(site: SiteSettings, tmp_path: Path) -> None:
    """The default child command should re-enter this package's CLI."""
    builder = SubprocessBuilder(site, config_path=tmp_path / "config.toml")
    assert builder.command[:4] == [sys.executable, "-m", "petal_pages", "build"]
    assert builder.command[-2:] == ["--config", str(tmp_path / "config.toml")]


def test_subprocess_builder_returns_artefact(
    site: SiteSettings, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A successful child build should return the written document."""
    calls: list[dict[str, typ.Any]] = []

    def fake_run(command: list[str], **kwargs: typ.Any) -> SimpleNamespace:
        calls.append({"command": command, **kwargs})
        site.output_path.write_text("<html></html>", encoding="utf-8")
        return SimpleNamespace(returncode=0, stdout="", stderr="")

    monkeypatch.setattr(build_module.subprocess, "run", fake_run)
    assert SubprocessBuilder(site, command=["make", "site"], timeout=5).build() == site.output_path
    assert calls[0]["command"] == ["make", "site"]
    assert calls[0]["check"] is True
    assert calls[0]["timeout"] == 5


def test_subprocess_failure_carries_stderr(
    site: SiteSettings, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A non-zero exit should report the child's stderr as diagnostics."""

    def fake_run(command: list[str], **_: typ.Any) -> None:
        raise subprocess.CalledProcessError(2, command, output="", stderr="Template error\n")

    monkeypatch.setattr(build_module.subprocess, "run", fake_run)
    with pytest.raises(BuildError, match="status 2") as excinfo:
        SubprocessBuilder(site, command=["false"]).build()
    assert excinfo.value.diagnostics == "Template error"


def test_subprocess_timeout_is_reported(
    site: SiteSettings, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A child that overruns its timeout should fail with a timeout message."""

    def fake_run(command: list[str], **_: typ.Any) -> None:
        raise subprocess.TimeoutExpired(command, 1.5, stderr=b"still compiling")

    monkeypatch.setattr(build_module.subprocess, "run", fake_run)
    with pytest.raises(BuildError, match="timed out after 1.5s") as excinfo:
        SubprocessBuilder(site, command=["sleep"], timeout=1.5).build()
    assert excinfo.value.diagnostics == "still compiling"


def test_subprocess_without_artefact_fails(
    site: SiteSettings, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A zero exit that writes no document should still be a failure."""
    monkeypatch.setattr(
        build_module.subprocess,
        "run",
        lambda command, **_: SimpleNamespace(returncode=0, stdout="", stderr="warn"),
    )
    with pytest.raises(BuildError, match="was not written"):
        SubprocessBuilder(site, command=["true"]).build()


def test_missing_command_is_reported(site: SiteSettings, monkeypatch: pytest.MonkeyPatch) -> None:
    """A build command that cannot be started should raise ``BuildError``."""

    def fake_run(command: list[str], **_: typ.Any) -> None:
        raise FileNotFoundError(command[0])

    monkeypatch.setattr(build_module.subprocess, "run", fake_run)
    with pytest.raises(BuildError, match="Unable to start"):
        SubprocessBuilder(site, command=["missing-tool"]).build()
