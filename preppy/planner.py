"""Enumerate the ordered bundle jobs for one run."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .entries import FileProbe, resolve_entries
from .errors import MissingOutputError
from .models import (
    ArtifactKind,
    BuildPlan,
    BundleJob,
    CliFlags,
    EntrySet,
    Format,
    OutputMatrix,
    PlanStep,
    Target,
    TypeExtraction,
)
from .outputs import build_output_matrix
from .schemas.manifest import PackageManifest


@dataclass(frozen=True, slots=True)
class PreparedBuild:
    """Everything derived before bundling starts."""

    entries: EntrySet
    matrix: OutputMatrix
    plan: BuildPlan
    warnings: Tuple[MissingOutputError, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": {
                role: str(getattr(self.entries, role))
                for role in ("node", "library", "browser", "binary")
                if getattr(self.entries, role) is not None
            },
            "outputs": {kind.value: str(self.matrix.get(kind)) for kind in self.matrix.present()},
            "steps": [step.to_dict() for step in self.plan.steps],
            "warnings": [str(warning) for warning in self.warnings],
        }


def plan_jobs(entries: EntrySet, matrix: OutputMatrix) -> BuildPlan:
    """Return the build plan for ``entries`` and ``matrix``.

    Node and library entries are mutually exclusive. A node program is bundled as
    CommonJS first, then ESM. A library is bundled as ESM, CommonJS, then UMD, with UMD
    left to the browser entry whenever one exists. An empty entry set yields an empty
    plan.
    """

    steps: List[PlanStep] = []
    warnings: List[MissingOutputError] = []

    def add(input_path: Path, target: Target, fmt: Format, kind: ArtifactKind, required: bool = True) -> None:
        output: Optional[Path] = matrix.get(kind)
        if output is not None:
            steps.append(BundleJob(input=input_path, target=target, format=fmt, output=output))
        elif required:
            warnings.append(
                MissingOutputError(
                    kind.value,
                    f"No `{kind.value}` output for the {target.value} entry {input_path}; "
                    f"skipping the {fmt.value} bundle",
                )
            )

    if entries.node is not None:
        add(entries.node, Target.NODE, Format.CJS, ArtifactKind.MAIN)
        add(entries.node, Target.NODE, Format.ESM, ArtifactKind.MODULE)
    elif entries.library is not None:
        add(entries.library, Target.LIB, Format.ESM, ArtifactKind.MODULE)
        add(entries.library, Target.LIB, Format.CJS, ArtifactKind.MAIN)
        if entries.browser is None:
            add(entries.library, Target.LIB, Format.UMD, ArtifactKind.UMD, required=False)
        if entries.typed_library and matrix.types is not None:
            steps.append(TypeExtraction(source=entries.library, destination=matrix.types.parent))

    if entries.browser is not None:
        add(entries.browser, Target.BROWSER, Format.ESM, ArtifactKind.BROWSER)
        add(entries.browser, Target.LIB, Format.UMD, ArtifactKind.UMD, required=False)

    if entries.binary is not None:
        # The matrix builder already warns about a binary without a destination.
        add(entries.binary, Target.CLI, Format.CJS, ArtifactKind.BINARY, required=False)

    return BuildPlan(steps=tuple(steps), warnings=tuple(warnings))


def prepare_build(
    flags: CliFlags,
    manifest: PackageManifest,
    root: Path,
    probe: FileProbe = Path.is_file,
) -> PreparedBuild:
    """Resolve entries, derive outputs and plan jobs without touching the bundler."""

    entries = resolve_entries(flags, root, probe)
    result = build_output_matrix(
        entries,
        manifest,
        root,
        output_folder=flags.output_folder,
        output_binary=flags.output_binary,
    )
    plan = plan_jobs(entries, result.matrix)
    reported = {warning.kind for warning in result.warnings}
    warnings = result.warnings + tuple(warning for warning in plan.warnings if warning.kind not in reported)
    return PreparedBuild(entries=entries, matrix=result.matrix, plan=plan, warnings=warnings)
