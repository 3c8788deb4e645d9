"""Fake collaborators shared by the test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from preppy.bundler.base import BuildRequest, ModuleGraph, WriteOptions, WrittenArtifact
from preppy.errors import BundleFailure, BundleWarning
from preppy.models import BundleJob


class FakeBundler:
    """In-memory bundler used to exercise orchestration without esbuild."""

    def __init__(
        self,
        *,
        imports: Optional[Dict[Path, Sequence[str]]] = None,
        fail_on_call: Optional[int] = None,
        warnings: Sequence[str] = (),
        write_warnings: Sequence[str] = (),
    ) -> None:
        self.imports = imports or {}
        self.fail_on_call = fail_on_call
        self.warnings = warnings
        self.write_warnings = write_warnings
        self.requests: List[BuildRequest] = []
        self.writes: List[Tuple[ModuleGraph, WriteOptions]] = []

    def build(self, request: BuildRequest) -> ModuleGraph:
        self.requests.append(request)
        if self.fail_on_call is not None and len(self.requests) == self.fail_on_call:
            raise BundleFailure(f"Unexpected token in {request.input}", input_path=request.input)

        request.classifier(str(request.input))
        externals = sorted(ref for ref in self.imports.get(request.input, ()) if request.classifier(ref))
        if request.events is not None:
            request.events.file_loaded(request.input, 1)
            request.events.file_transformed(request.input)
        return ModuleGraph(
            input=request.input,
            target=request.target,
            constants=request.constants,
            transforms=request.transforms,
            modules=(request.input,),
            externals=tuple(externals),
            warnings=tuple(BundleWarning(message) for message in self.warnings),
        )

    def write(self, graph: ModuleGraph, options: WriteOptions) -> WrittenArtifact:
        self.writes.append((graph, options))
        body = f"// {options.format.value} {graph.input.name} minify={options.minify}\n"
        code = f"{options.banner}\n{body}"
        if graph.input.is_file():
            first_line = graph.input.read_text(encoding="utf-8").split("\n", 1)[0]
            if first_line.startswith("#!"):
                code = f"{first_line}\n{code}"
        options.destination.parent.mkdir(parents=True, exist_ok=True)
        options.destination.write_text(code, encoding="utf-8")
        warnings = tuple(BundleWarning(message, source=graph.input) for message in self.write_warnings)
        return WrittenArtifact(code=code, warnings=warnings)


class RecordingReporter:
    def __init__(self) -> None:
        self.events: List[Tuple[str, object]] = []

    def job_started(self, job: BundleJob) -> None:
        self.events.append(("start", job))

    def file_loaded(self, path: Path, count: int) -> None:
        self.events.append(("loaded", path))

    def file_transformed(self, path: Path) -> None:
        self.events.append(("transformed", path))

    def artifact_written(self, code: str, output: Path, is_library: bool) -> None:
        self.events.append(("written", (output, is_library)))


class FakeTypeExtractor:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.calls: List[Tuple[Path, Path, bool]] = []

    def extract(self, source: Path, destination: Path, verbose: bool = False) -> None:
        self.calls.append((source, destination, verbose))
        if self.error is not None:
            raise self.error


