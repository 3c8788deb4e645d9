"""Progress and size reporting. Purely observational."""

from __future__ import annotations

import gzip
import logging
import os
from pathlib import Path
from typing import Optional, Protocol

from .models import BundleJob
from .schemas.manifest import PackageManifest

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
ELLIPSIS = "…"
_UNITS = ("B", "kB", "MB", "GB")


class Reporter(Protocol):
    def job_started(self, job: BundleJob) -> None:  # pragma: no cover - interface
        ...

    def file_loaded(self, path: Path, count: int) -> None:  # pragma: no cover - interface
        ...

    def file_transformed(self, path: Path) -> None:  # pragma: no cover - interface
        ...

    def artifact_written(self, code: str, output: Path, is_library: bool) -> None:  # pragma: no cover - interface
        ...


def format_bytes(size: int) -> str:
    value = float(size)
    for unit in _UNITS:
        if value < 1000 or unit == _UNITS[-1]:
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.2f} {unit}"
        value /= 1000
    return f"{size} B"


def gzip_size(code: str) -> int:
    # mtime=0 keeps the measurement independent of wall-clock time.
    return len(gzip.compress(code.encode("utf-8"), compresslevel=9, mtime=0))


class ConsoleReporter:
    """Logs job progress and artifact sizes."""

    def __init__(
        self,
        manifest: PackageManifest,
        *,
        root: Optional[Path] = None,
        quiet: bool = False,
        ci: bool = False,
        limit: int = DEFAULT_LIMIT,
        prefix: str = "Bundling:",
    ) -> None:
        self.manifest = manifest
        self.root = root or Path.cwd()
        self.quiet = quiet
        self.ci = ci
        self.limit = limit
        self.prefix = prefix

    def job_started(self, job: BundleJob) -> None:
        if self.quiet:
            return
        logger.info(
            ">>> Bundling %s-%s as %s to %s...",
            self.manifest.name,
            self.manifest.version,
            job.format.value.upper(),
            self._display(job.output),
        )

    def file_loaded(self, path: Path, count: int) -> None:
        if self.quiet or self.ci:
            return
        file = self._display(path)
        short = file[-self.limit:]
        marker = ELLIPSIS if short != file else ""
        logger.debug("%s %s%s [%d]", self.prefix, marker, short, count)

    def file_transformed(self, path: Path) -> None:
        return None

    def artifact_written(self, code: str, output: Path, is_library: bool) -> None:
        size = format_bytes(len(code.encode("utf-8")))
        if is_library:
            logger.info("    %s: %s (gzip: %s)", self._display(output), size, format_bytes(gzip_size(code)))
        else:
            logger.info("    %s: %s", self._display(output), size)

    def _display(self, path: Path) -> str:
        try:
            relative = os.path.relpath(path, self.root)
        except ValueError:
            relative = str(path)
        return relative.replace(os.sep, "/")
