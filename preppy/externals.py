"""Inline-versus-external decisions for module references."""

from __future__ import annotations

from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Iterable, List, Set, Union

from .errors import BundleWarning

NODE_BUILTINS = frozenset(
    {
        "assert", "async_hooks", "buffer", "child_process", "cluster", "console", "constants",
        "crypto", "dgram", "diagnostics_channel", "dns", "domain", "events", "fs", "http", "http2",
        "https", "inspector", "module", "net", "os", "path", "perf_hooks", "process", "punycode",
        "querystring", "readline", "repl", "stream", "string_decoder", "sys", "timers", "tls",
        "trace_events", "tty", "url", "util", "v8", "vm", "wasi", "worker_threads", "zlib",
    }
)

_RELATIVE_PREFIXES = ("./", "../", ".\\", "..\\")

PathLike = Union[str, Path]


def is_relative(reference: str) -> bool:
    return reference in (".", "..") or reference.startswith(_RELATIVE_PREFIXES)


def is_absolute(reference: str) -> bool:
    return PurePosixPath(reference).is_absolute() or PureWindowsPath(reference).is_absolute()


def is_external(reference: PathLike, input_path: PathLike) -> bool:
    """Return ``True`` when ``reference`` should stay an unresolved import.

    The graph root, relative references and absolute paths are always bundled.
    Anything else is a bare package reference supplied by the consumer at runtime.
    """

    reference = str(reference)
    if reference == str(input_path):
        return False
    if is_relative(reference) or is_absolute(reference):
        return False
    return True


def package_name(reference: str) -> str:
    """Return the package part of a bare reference (``@scope/pkg/sub`` -> ``@scope/pkg``)."""

    if reference.startswith("node:"):
        return reference[len("node:"):].split("/", 1)[0]
    parts = reference.split("/")
    if reference.startswith("@") and len(parts) > 1:
        return "/".join(parts[:2])
    return parts[0]


def is_builtin(reference: str) -> bool:
    return reference.startswith("node:") or package_name(reference) in NODE_BUILTINS


class ExternalClassifier:
    """Classifier bound to one job's input, remembering what it externalized."""

    def __init__(self, input_path: Path) -> None:
        self.input_path = input_path
        self._externals: Set[str] = set()

    def __call__(self, reference: PathLike) -> bool:
        external = is_external(reference, self.input_path)
        if external:
            self._externals.add(str(reference))
        return external

    @property
    def externals(self) -> List[str]:
        return sorted(self._externals)


def undeclared_externals(references: Iterable[str], declared: Iterable[str]) -> List[BundleWarning]:
    """Warn about external packages that are neither built-ins nor declared dependencies."""

    known = set(declared)
    missing = sorted({package_name(ref) for ref in references if not is_builtin(ref)} - known)
    return [
        BundleWarning(f"'{name}' is imported but not listed in dependencies or peerDependencies")
        for name in missing
    ]
