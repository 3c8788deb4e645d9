"""Contract between the orchestrator and the external module bundler."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Hashable, Optional, Protocol, Tuple

from ..errors import BundleWarning
from ..models import BuildConstants, Format, Target
from ..stages import StageKind

Classifier = Callable[[str], bool]


class ProgressEvents(Protocol):
    def file_loaded(self, path: Path, count: int) -> None:  # pragma: no cover - interface
        ...

    def file_transformed(self, path: Path) -> None:  # pragma: no cover - interface
        ...


@dataclass(frozen=True, slots=True)
class ModuleGraph:
    """Result of walking the dependency graph from one entry."""

    input: Path
    target: Target
    constants: BuildConstants
    transforms: Tuple[StageKind, ...] = ()
    modules: Tuple[Path, ...] = ()
    externals: Tuple[str, ...] = ()
    warnings: Tuple[BundleWarning, ...] = ()


@dataclass(frozen=True, slots=True)
class BuildRequest:
    input: Path
    target: Target
    cache: "ModuleCache"
    classifier: Classifier
    transforms: Tuple[StageKind, ...]
    constants: BuildConstants
    events: Optional[ProgressEvents] = None


@dataclass(frozen=True, slots=True)
class WriteOptions:
    format: Format
    banner: str
    sourcemap: bool
    destination: Path
    minify: bool = False
    global_name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class WrittenArtifact:
    """Emitted code of one artifact and the diagnostics of its write pass."""

    code: str
    warnings: Tuple[BundleWarning, ...] = ()


class Bundler(Protocol):
    def build(self, request: BuildRequest) -> ModuleGraph:  # pragma: no cover - interface
        """Produce a module graph or raise :class:`~preppy.errors.BundleFailure`."""
        ...

    def write(self, graph: ModuleGraph, options: WriteOptions) -> WrittenArtifact:  # pragma: no cover - interface
        """Write ``graph`` to ``options.destination``, returning the code and format-specific warnings."""
        ...


def fingerprint(path: Path) -> Optional[Tuple[int, int]]:
    try:
        stat = path.stat()
    except FileNotFoundError:
        return None
    return stat.st_mtime_ns, stat.st_size


@dataclass
class _CacheEntry:
    graph: ModuleGraph
    fingerprints: Dict[Path, Optional[Tuple[int, int]]]


@dataclass
class ModuleCache:
    """Warm module-resolution cache shared by every job of one run.

    Entries are keyed by the caller and invalidated as soon as any module they
    were built from changes on disk. Access is strictly serial.
    """

    _entries: Dict[Hashable, _CacheEntry] = field(default_factory=dict)
    hits: int = 0
    misses: int = 0

    def get(self, key: Hashable) -> Optional[ModuleGraph]:
        entry = self._entries.get(key)
        if entry is not None and all(fingerprint(path) == stamp for path, stamp in entry.fingerprints.items()):
            self.hits += 1
            return entry.graph
        self.misses += 1
        return None

    def put(self, key: Hashable, graph: ModuleGraph) -> None:
        self._entries[key] = _CacheEntry(
            graph=graph,
            fingerprints={path: fingerprint(path) for path in graph.modules},
        )

    def __len__(self) -> int:
        return len(self._entries)
