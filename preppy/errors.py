"""Error taxonomy shared by planning and bundling."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class PreppyError(RuntimeError):
    """Base class for fatal preppy errors."""


class ManifestError(PreppyError):
    """Raised when the project manifest is missing or invalid."""


class MissingFileError(PreppyError):
    """Raised when an overridden or conventional entry path does not exist."""

    def __init__(self, path: Path, role: Optional[str] = None) -> None:
        label = f" for {role} entry" if role else ""
        super().__init__(f"Entry file not found{label}: {path}")
        self.path = path
        self.role = role


class BundlerNotFoundError(PreppyError):
    """Raised when an external tool executable cannot be located."""


class BundleFailure(PreppyError):
    """Fatal error reported by the bundler. Aborts the remaining job queue."""

    def __init__(self, message: str, *, input_path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.input_path = input_path


class TypeExtractionFailure(PreppyError):
    """Type declaration extraction failed. Reported, never fatal."""


class InvalidJobError(ValueError):
    """Raised when a bundle job combines a target with a format it cannot produce."""


class MissingOutputError(Exception):
    """A manifest output field is absent or has nothing to feed it.

    Collected as a warning by the output matrix builder and the planner, never raised
    out of a run.
    """

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class BundleWarning(Exception):
    """Non-fatal diagnostic emitted while bundling one job."""

    def __init__(self, message: str, *, source: Optional[Path] = None) -> None:
        super().__init__(message)
        self.source = source
