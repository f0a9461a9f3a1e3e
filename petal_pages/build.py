"""Compile the production snapshot into the site document.

:class:`SiteBuilder` does the work in process. :class:`SubprocessBuilder`
runs the same build through ``python -m petal_pages build`` so the editor
process is isolated from template failures; it surfaces the child's stderr
as diagnostics.
"""

from __future__ import annotations

import logging
import subprocess
import sys
import typing as typ
from pathlib import Path

from .compiler import compile_template
from .storage import StorageError

if typ.TYPE_CHECKING:
    from .config import SectionRule, SiteSettings
    from .storage import ContentStore

logger = logging.getLogger(__name__)


class BuildError(RuntimeError):
    """Raised when the site document cannot be built.

    Attributes
    ----------
    diagnostics : str
        Output explaining the failure, such as the build command's stderr.
    """

    def __init__(self, message: str, diagnostics: str = "") -> None:
        super().__init__(message)
        self.diagnostics = diagnostics


class Builder(typ.Protocol):
    """Anything that turns the production snapshot into a document on disk."""

    def build(self) -> Path: ...


class SiteBuilder:
    """Build the site document in the current process."""

    def __init__(
        self,
        site: SiteSettings,
        store: ContentStore,
        *,
        sections: typ.Iterable[SectionRule] | None = None,
        output: Path | None = None,
    ) -> None:
        self.site = site
        self.store = store
        self.sections = tuple(sections) if sections is not None else None
        self.output = output or site.output_path

    def build(self) -> Path:
        """Compile the template against production data and write the output.

        Returns
        -------
        Path
            The written document.

        Raises
        ------
        BuildError
            If the template or production data cannot be read, or the output
            cannot be written.
        """
        try:
            template = self.site.template_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"Unable to read template {self.site.template_path}"
            raise BuildError(msg, str(exc)) from exc
        try:
            tree = self.store.load_production()
        except StorageError as exc:
            msg = "Unable to load production content"
            raise BuildError(msg, str(exc)) from exc

        html = compile_template(template, tree, self.sections)
        try:
            self.output.parent.mkdir(parents=True, exist_ok=True)
            self.output.write_text(html, encoding="utf-8")
        except OSError as exc:
            msg = f"Unable to write {self.output}"
            raise BuildError(msg, str(exc)) from exc
        logger.info("Built %s from %s", self.output, self.site.template_path)
        return self.output


class SubprocessBuilder:
    """Run the build command in a child process and wait for it."""

    def __init__(
        self,
        site: SiteSettings,
        *,
        command: typ.Sequence[str] | None = None,
        config_path: Path | None = None,
        timeout: float = 120.0,
    ) -> None:
        """Configure the child build.

        Parameters
        ----------
        site : SiteSettings
            Site whose output document the command produces.
        command : Sequence[str], optional
            Build command; defaults to this interpreter running
            ``-m petal_pages build --root <site root>``.
        config_path : Path, optional
            Settings file handed to the default command with ``--config``.
        timeout : float, optional
            Seconds to wait before the build is abandoned.
        """
        self.site = site
        self.timeout = timeout
        if command is not None:
            self.command = list(command)
        else:
            self.command = [
                sys.executable,
                "-m",
                "petal_pages",
                "build",
                "--root",
                str(site.root),
                "--output",
                str(site.output_path),
            ]
            if config_path is not None:
                self.command += ["--config", str(config_path)]

    def build(self) -> Path:
        try:
            completed = subprocess.run(  # noqa: S603
                self.command,
                check=True,
                text=True,
                capture_output=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as exc:
            msg = f"Build command exited with status {exc.returncode}"
            raise BuildError(msg, (exc.stderr or exc.stdout or "").strip()) from exc
        except subprocess.TimeoutExpired as exc:
            msg = f"Build command timed out after {self.timeout:g}s"
            raise BuildError(msg, _as_text(exc.stderr)) from exc
        except OSError as exc:
            msg = f"Unable to start build command {self.command[0]}"
            raise BuildError(msg, str(exc)) from exc

        output = self.site.output_path
        if not output.is_file():
            msg = f"Build finished but {output} was not written"
            raise BuildError(msg, (completed.stderr or "").strip())
        return output


def _as_text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace").strip()
    return value.strip()


__all__ = ["BuildError", "Builder", "SiteBuilder", "SubprocessBuilder"]
