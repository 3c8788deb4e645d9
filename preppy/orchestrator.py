"""Sequential execution of a build plan against the bundler."""

from __future__ import annotations

import logging
import re
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .bundler.base import BuildRequest, Bundler, ModuleCache, WriteOptions
from .errors import BundleFailure, BundleWarning, MissingOutputError, TypeExtractionFailure
from .externals import ExternalClassifier, undeclared_externals
from .manifest import get_banner
from .models import BuildConstants, BuildPlan, BundleJob, PlanStep, Target, TypeExtraction
from .reporting import Reporter
from .schemas.manifest import PackageManifest
from .stages import DEFAULT_STAGES, Stage, StageKind, select_stages
from .typedefs import TypeExtractor

logger = logging.getLogger(__name__)

SHEBANG = "#!/usr/bin/env node"

_WORDS = re.compile(r"[A-Z]?[a-z]+|[A-Z]+(?![a-z])|\d+")


@dataclass
class RunResult:
    artifacts: List[Path] = field(default_factory=list)
    warnings: List[Exception] = field(default_factory=list)
    type_failures: List[TypeExtractionFailure] = field(default_factory=list)
    failure: Optional[BundleFailure] = None
    skipped: Tuple[PlanStep, ...] = ()

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


def camel_case(name: str) -> str:
    """``@scope/my-lib`` -> ``scopeMyLib``."""

    words = _WORDS.findall(name)
    if not words:
        return "bundle"
    return words[0].lower() + "".join(word.capitalize() for word in words[1:])


def make_executable(path: Path) -> None:
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def has_hashbang(path: Path) -> bool:
    if not path.is_file():
        return False
    with path.open("rb") as handle:
        return handle.read(2) == b"#!"


def _warning_key(warning: Exception) -> Tuple[str, str, Optional[Path]]:
    return type(warning).__name__, str(warning), getattr(warning, "source", None)


class Orchestrator:
    """Runs bundle jobs strictly one at a time, sharing one warm module cache."""

    def __init__(
        self,
        *,
        bundler: Bundler,
        manifest: PackageManifest,
        reporter: Reporter,
        type_extractor: Optional[TypeExtractor] = None,
        sourcemap: bool = False,
        verbose: bool = False,
        stages: Sequence[Stage] = DEFAULT_STAGES,
        cache: Optional[ModuleCache] = None,
    ) -> None:
        self.bundler = bundler
        self.manifest = manifest
        self.reporter = reporter
        self.type_extractor = type_extractor
        self.sourcemap = sourcemap
        self.verbose = verbose
        self.stages = tuple(stages)
        self.cache = cache if cache is not None else ModuleCache()
        self.banner = get_banner(manifest)
        self.global_name = camel_case(manifest.name)

    def run(self, plan: BuildPlan, warnings: Sequence[MissingOutputError] = ()) -> RunResult:
        result = RunResult(warnings=list(warnings))
        if plan.is_empty:
            logger.warning("Nothing to build: no entry point resolved.")
            return result

        for index, step in enumerate(plan.steps):
            if isinstance(step, TypeExtraction):
                self._extract_types(step, result)
                continue
            try:
                self._bundle(step, result)
            except BundleFailure as exc:
                logger.error("Error during bundling %s: %s", step.format.value, exc)
                result.failure = exc
                result.skipped = plan.steps[index + 1:]
                break

        if result.ok:
            logger.info("Done!")
        return result

    def _bundle(self, job: BundleJob, result: RunResult) -> None:
        self.reporter.job_started(job)

        selection = select_stages(job, self.stages)
        constants = BuildConstants(name=self.manifest.name, version=self.manifest.version, target=job.target)
        graph = self.bundler.build(
            BuildRequest(
                input=job.input,
                target=job.target,
                cache=self.cache,
                classifier=ExternalClassifier(job.input),
                transforms=selection.transforms,
                constants=constants,
                events=self.reporter,
            )
        )

        diagnostics: List[BundleWarning] = list(graph.warnings)
        diagnostics.extend(undeclared_externals(graph.externals, self.manifest.dependency_names))
        self._collect(diagnostics, result)

        banner = self.banner
        # The bundler keeps an entry hashbang as the first output line, ahead of the banner.
        if job.target is Target.CLI and not has_hashbang(job.input):
            banner = f"{SHEBANG}\n\n{self.banner}"
        artifact = self.bundler.write(
            graph,
            WriteOptions(
                format=job.format,
                banner=banner,
                sourcemap=self.sourcemap,
                destination=job.output,
                minify=StageKind.MINIFY in selection,
                global_name=self.global_name,
            ),
        )
        self._collect(artifact.warnings, result)
        if StageKind.EXECUTABLE in selection:
            make_executable(job.output)

        result.artifacts.append(job.output)
        self.reporter.artifact_written(artifact.code, job.output, job.target is not Target.CLI)

    @staticmethod
    def _collect(warnings: Sequence[BundleWarning], result: RunResult) -> None:
        """Log and record warnings not already reported during this run.

        Jobs sharing an entry reuse one cached module graph, so its analysis
        warnings come back once per job.
        """

        seen = {_warning_key(warning) for warning in result.warnings}
        for warning in warnings:
            key = _warning_key(warning)
            if key in seen:
                continue
            seen.add(key)
            logger.warning("  - %s", warning)
            result.warnings.append(warning)

    def _extract_types(self, step: TypeExtraction, result: RunResult) -> None:
        logger.info(
            ">>> Extracting types from %s-%s as TSDEF to %s...",
            self.manifest.name,
            self.manifest.version,
            step.destination,
        )
        try:
            if self.type_extractor is None:
                raise TypeExtractionFailure("No type extractor configured")
            self.type_extractor.extract(step.source, step.destination, self.verbose)
        except TypeExtractionFailure as exc:
            logger.error("Type extraction failed for %s: %s", step.source, exc)
            result.type_failures.append(exc)
