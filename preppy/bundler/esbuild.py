"""Bundler adapter driving the ``esbuild`` executable."""

from __future__ import annotations

import json
import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..errors import BundleFailure, BundlerNotFoundError, BundleWarning
from ..models import Format, Target
from ..stages import StageKind
from .base import BuildRequest, ModuleGraph, WriteOptions, WrittenArtifact
from .yaml_modules import YAML_EXTENSIONS, is_yaml_module, stage_sources

logger = logging.getLogger(__name__)

PLATFORMS: Dict[Target, str] = {
    Target.NODE: "node",
    Target.LIB: "neutral",
    Target.BROWSER: "browser",
    Target.CLI: "node",
}

RESOLVE_EXTENSIONS = ".tsx,.ts,.jsx,.js,.mjs,.cjs,.json"

UMD_HEADER = """(function (root, factory) {
  if (typeof define === "function" && define.amd) define(["require", "exports", "module"], factory);
  else if (typeof module === "object" && module.exports) factory(require, exports, module);
  else {
    var m = { exports: {} };
    factory(function (id) { throw new Error("Cannot find module '" + id + "'"); }, m.exports, m);
    root[%s] = m.exports;
  }
}(typeof self !== "undefined" ? self : this, function (require, exports, module) {"""

UMD_FOOTER = "}));"

_WARNING_MARKER = "[WARNING]"
_ERROR_MARKER = "[ERROR]"


class EsbuildBundler:
    """Two-pass esbuild driver.

    ``build`` runs an analysis pass with ``--metafile`` to discover the module graph and
    surface fatal errors early. ``write`` renders the final artifact for one format and
    returns the warnings esbuild prints for that format.

    What gets bundled is decided by esbuild itself through ``--packages=external``,
    which leaves every bare package import external. The request's classifier does
    not steer esbuild: it is applied to each import of the metafile afterwards to
    record the job's externals, and any import where esbuild disagrees with it is
    reported as a :class:`~preppy.errors.BundleWarning`.

    YAML imports are read as text during analysis and converted to JSON in a staging
    tree before writing (see :mod:`preppy.bundler.yaml_modules`).
    """

    def __init__(self, executable: Optional[str], *, root: Path, target_version: str = "es2018") -> None:
        self.executable = executable
        self.root = root
        self.target_version = target_version

    def build(self, request: BuildRequest) -> ModuleGraph:
        key = (request.input, request.target)
        cached = request.cache.get(key)
        if cached is not None:
            logger.debug("Reusing module graph for %s (%s)", request.input, request.target.value)
            self._emit_events(request, cached.modules)
            return cached

        with tempfile.TemporaryDirectory(prefix="preppy-") as tmp_dir:
            metafile = Path(tmp_dir) / "meta.json"
            args = [
                str(request.input),
                "--bundle",
                "--format=esm",
                f"--outfile={Path(tmp_dir) / 'analysis.js'}",
                f"--metafile={metafile}",
                *self._common_flags(request.target, request.transforms, request.constants.as_defines(), "text"),
            ]
            stderr = self._run(args, request.input, self.root)
            meta = json.loads(metafile.read_text(encoding="utf-8"))

        modules, externals, mismatches = self._walk(meta, request)
        warnings = tuple(BundleWarning(message, source=request.input) for message in _diagnostics(stderr, _WARNING_MARKER))
        graph = ModuleGraph(
            input=request.input,
            target=request.target,
            constants=request.constants,
            transforms=request.transforms,
            modules=modules,
            externals=externals,
            warnings=warnings + mismatches,
        )
        request.cache.put(key, graph)
        self._emit_events(request, modules)
        return graph

    def write(self, graph: ModuleGraph, options: WriteOptions) -> WrittenArtifact:
        if StageKind.YAML not in graph.transforms or not any(is_yaml_module(module) for module in graph.modules):
            return self._write(graph, options, graph.input, self.root)

        with tempfile.TemporaryDirectory(prefix="preppy-yaml-") as tmp_dir:
            staged = stage_sources(graph.modules, self.root, graph.input, Path(tmp_dir))
            logger.debug("Staged %s with YAML modules as JSON in %s", graph.input, staged.root)
            return self._write(graph, options, staged.entry, staged.root)

    def _write(self, graph: ModuleGraph, options: WriteOptions, entry: Path, cwd: Path) -> WrittenArtifact:
        umd = options.format is Format.UMD
        banner = options.banner
        args = [
            str(entry),
            "--bundle",
            f"--format={Format.CJS.value if umd else options.format.value}",
            f"--outfile={os.path.abspath(options.destination)}",
            *self._common_flags(graph.target, graph.transforms, graph.constants.as_defines(), "json"),
        ]
        if umd:
            banner = f"{banner}\n{UMD_HEADER % json.dumps(options.global_name or 'bundle')}"
            args.append(f"--footer:js={UMD_FOOTER}")
        if banner:
            args.append(f"--banner:js={banner}")
        if options.minify:
            args.extend(["--minify", "--keep-names", "--charset=ascii"])
        if options.sourcemap:
            args.append("--sourcemap")

        options.destination.parent.mkdir(parents=True, exist_ok=True)
        stderr = self._run(args, graph.input, cwd)
        warnings = tuple(
            BundleWarning(f"{message} ({options.format.value})", source=graph.input)
            for message in _diagnostics(stderr, _WARNING_MARKER)
        )
        return WrittenArtifact(code=options.destination.read_text(encoding="utf-8"), warnings=warnings)

    def _common_flags(
        self,
        target: Target,
        transforms: Sequence[StageKind],
        defines: Dict[str, str],
        yaml_loader: str,
    ) -> List[str]:
        flags = [
            f"--platform={PLATFORMS[target]}",
            "--packages=external",
            "--log-level=warning",
            "--color=false",
        ]
        if StageKind.REPLACE in transforms:
            flags.extend(f"--define:{name}={value}" for name, value in defines.items())
        if StageKind.TRANSPILE in transforms:
            flags.extend(
                [
                    f"--target={self.target_version}",
                    f"--resolve-extensions={RESOLVE_EXTENSIONS}",
                    "--loader:.js=jsx",
                ]
            )
        if StageKind.JSON in transforms:
            flags.append("--loader:.json=json")
        if StageKind.YAML in transforms:
            flags.extend(f"--loader:{extension}={yaml_loader}" for extension in sorted(YAML_EXTENSIONS))
        return flags

    def _run(self, args: Sequence[str], input_path: Path, cwd: Path) -> str:
        if not self.executable:
            raise BundlerNotFoundError("esbuild executable not found. Install esbuild or set PREPPY_ESBUILD.")
        cmd = [self.executable, *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            proc = subprocess.run(
                cmd,
                cwd=str(cwd),
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise BundlerNotFoundError(f"esbuild executable not found: {self.executable}") from exc

        if proc.returncode != 0:
            errors = _diagnostics(proc.stderr, _ERROR_MARKER)
            detail = "; ".join(errors) if errors else proc.stderr.strip()
            raise BundleFailure(f"esbuild failed for {input_path}: {detail}", input_path=input_path)
        return proc.stderr

    def _walk(
        self, meta: Dict[str, object], request: BuildRequest
    ) -> Tuple[Tuple[Path, ...], Tuple[str, ...], Tuple[BundleWarning, ...]]:
        request.classifier(str(request.input))

        modules: List[Path] = []
        externals: set[str] = set()
        mismatches: List[BundleWarning] = []
        inputs = meta.get("inputs", {})
        for name, info in inputs.items():  # type: ignore[union-attr]
            if ":" in name.split("/", 1)[0]:
                continue
            source = Path(os.path.normpath(self.root / name))
            modules.append(source)
            for entry in info.get("imports", []):
                reference = entry.get("original")
                if reference is None:
                    # Older metafiles only carry the resolved path.
                    path = entry["path"]
                    reference = path if entry.get("external") else os.path.normpath(self.root / path)
                external = request.classifier(reference)
                if external:
                    externals.add(reference)
                if external != bool(entry.get("external")):
                    state = "external" if entry.get("external") else "bundled"
                    mismatches.append(
                        BundleWarning(f"'{reference}' was {state} by esbuild contrary to classification", source=source)
                    )
        return tuple(modules), tuple(sorted(externals)), tuple(mismatches)

    @staticmethod
    def _emit_events(request: BuildRequest, modules: Iterable[Path]) -> None:
        if request.events is None:
            return
        for count, module in enumerate(modules, start=1):
            request.events.file_loaded(module, count)
            request.events.file_transformed(module)


def _diagnostics(stderr: str, marker: str) -> List[str]:
    messages = []
    for line in stderr.splitlines():
        if marker in line:
            messages.append(line.split(marker, 1)[1].strip())
    return messages
