"""Bundle one JavaScript/TypeScript source tree into every artifact its manifest declares."""

__version__ = "0.1.0"
from .errors import (
    BundleFailure,
    BundleWarning,
    InvalidJobError,
    ManifestError,
    MissingFileError,
    MissingOutputError,
    PreppyError,
    TypeExtractionFailure,
)
from .externals import is_external
from .manifest import load_manifest
from .models import BuildPlan, BundleJob, CliFlags, EntrySet, Format, OutputMatrix, Target
from .orchestrator import Orchestrator, RunResult
from .planner import plan_jobs, prepare_build

__all__ = [
    "__version__",
    "BuildPlan",
    "BundleFailure",
    "BundleJob",
    "BundleWarning",
    "CliFlags",
    "EntrySet",
    "Format",
    "InvalidJobError",
    "ManifestError",
    "MissingFileError",
    "MissingOutputError",
    "Orchestrator",
    "OutputMatrix",
    "PreppyError",
    "RunResult",
    "Target",
    "TypeExtractionFailure",
    "is_external",
    "load_manifest",
    "plan_jobs",
    "prepare_build",
]
