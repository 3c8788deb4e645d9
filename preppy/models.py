"""Immutable domain types shared by planning and execution."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Mapping, Optional, Tuple, Union

from .errors import InvalidJobError, MissingOutputError


class Target(str, Enum):
    NODE = "node"
    LIB = "lib"
    BROWSER = "browser"
    CLI = "cli"


class Format(str, Enum):
    CJS = "cjs"
    ESM = "esm"
    UMD = "umd"


class ArtifactKind(str, Enum):
    MAIN = "main"
    MODULE = "module"
    UMD = "umd"
    TYPES = "types"
    BROWSER = "browser"
    BINARY = "binary"


ALLOWED_FORMATS: Mapping[Target, FrozenSet[Format]] = {
    Target.NODE: frozenset({Format.CJS, Format.ESM}),
    Target.LIB: frozenset({Format.ESM, Format.CJS, Format.UMD}),
    Target.BROWSER: frozenset({Format.ESM}),
    Target.CLI: frozenset({Format.CJS}),
}
"""Target/format combinations a bundle job may use."""

TYPED_EXTENSIONS: FrozenSet[str] = frozenset({".ts", ".tsx"})


@dataclass(frozen=True, slots=True)
class CliFlags:
    """Command line overrides for one run."""

    verbose: bool = False
    quiet: bool = False
    sourcemap: bool = False
    dry_run: bool = False
    input_node: Optional[Path] = None
    input_library: Optional[Path] = None
    input_browser: Optional[Path] = None
    input_binary: Optional[Path] = None
    output_folder: Optional[Path] = None
    output_binary: Optional[Path] = None


@dataclass(frozen=True, slots=True)
class EntrySet:
    node: Optional[Path] = None
    library: Optional[Path] = None
    browser: Optional[Path] = None
    binary: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.node is not None and self.library is not None:
            raise ValueError("node and library entries are mutually exclusive")

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, item.name) is None for item in fields(self))

    @property
    def typed_library(self) -> bool:
        return self.library is not None and self.library.suffix in TYPED_EXTENSIONS


@dataclass(frozen=True, slots=True)
class OutputMatrix:
    main: Optional[Path] = None
    module: Optional[Path] = None
    umd: Optional[Path] = None
    types: Optional[Path] = None
    browser: Optional[Path] = None
    binary: Optional[Path] = None

    def get(self, kind: ArtifactKind) -> Optional[Path]:
        return getattr(self, kind.value)

    def present(self) -> Tuple[ArtifactKind, ...]:
        return tuple(kind for kind in ArtifactKind if self.get(kind) is not None)


@dataclass(frozen=True, slots=True)
class OutputMatrixResult:
    matrix: OutputMatrix
    warnings: Tuple[MissingOutputError, ...] = ()


@dataclass(frozen=True, slots=True)
class BundleJob:
    """One concrete (input, target, format, output) bundling task."""

    input: Path
    target: Target
    format: Format
    output: Path

    def __post_init__(self) -> None:
        allowed = ALLOWED_FORMATS[self.target]
        if self.format not in allowed:
            supported = ", ".join(sorted(item.value for item in allowed))
            raise InvalidJobError(
                f"Target '{self.target.value}' cannot be bundled as '{self.format.value}' (supported: {supported})"
            )

    def to_dict(self) -> Dict[str, str]:
        return {
            "input": str(self.input),
            "target": self.target.value,
            "format": self.format.value,
            "output": str(self.output),
        }


@dataclass(frozen=True, slots=True)
class TypeExtraction:
    """Declaration extraction side step for a typed library source."""

    source: Path
    destination: Path

    def to_dict(self) -> Dict[str, str]:
        return {"extract_types": str(self.source), "destination": str(self.destination)}


PlanStep = Union[BundleJob, TypeExtraction]


@dataclass(frozen=True, slots=True)
class BuildPlan:
    steps: Tuple[PlanStep, ...] = ()
    warnings: Tuple[MissingOutputError, ...] = ()

    @property
    def jobs(self) -> Tuple[BundleJob, ...]:
        return tuple(step for step in self.steps if isinstance(step, BundleJob))

    @property
    def is_empty(self) -> bool:
        return not self.steps


@dataclass(frozen=True, slots=True)
class BuildConstants:
    """Compile-time replacements injected into one job."""

    name: str
    version: str
    target: Target
    prefix: str = field(default="process.env.", repr=False)

    def as_defines(self) -> Dict[str, str]:
        """Map ``process.env.*`` identifiers to JSON string literals."""

        return {
            f"{self.prefix}NAME": json.dumps(self.name),
            f"{self.prefix}VERSION": json.dumps(self.version),
            f"{self.prefix}TARGET": json.dumps(self.target.value),
        }
