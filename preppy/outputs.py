"""Derive artifact destinations from manifest fields and CLI overrides."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from .errors import MissingOutputError
from .models import ArtifactKind, EntrySet, OutputMatrix, OutputMatrixResult
from .schemas.manifest import PackageManifest

NODE_FOLDER_NAMES = {
    ArtifactKind.MAIN: "node.commonjs.js",
    ArtifactKind.MODULE: "node.esmodule.js",
}

FOLDER_NAMES = {
    ArtifactKind.MAIN: "index.cjs.js",
    ArtifactKind.MODULE: "index.esm.js",
    ArtifactKind.UMD: "index.umd.js",
    ArtifactKind.TYPES: "index.d.ts",
    ArtifactKind.BROWSER: "browser.esm.js",
    ArtifactKind.BINARY: "cli.js",
}


def build_output_matrix(
    entries: EntrySet,
    manifest: PackageManifest,
    root: Path,
    *,
    output_folder: Optional[Path] = None,
    output_binary: Optional[Path] = None,
) -> OutputMatrixResult:
    """Map each artifact kind to its destination, collecting non-fatal warnings."""

    if output_folder is not None:
        matrix = _folder_matrix(entries, root / output_folder, root, output_binary)
        return OutputMatrixResult(matrix=matrix, warnings=())

    def declared(value: Optional[str]) -> Optional[Path]:
        return root / value if value else None

    warnings: List[MissingOutputError] = []
    has_program = entries.node is not None or entries.library is not None

    main = declared(manifest.main)
    module = declared(manifest.module_path)
    umd = declared(manifest.umd_path)

    if main is None:
        warnings.append(MissingOutputError("main", "Missing `main` entry in package manifest!"))
    for kind, path in ((ArtifactKind.MAIN, main), (ArtifactKind.MODULE, module)):
        if path is not None and not has_program:
            warnings.append(_unfed(kind, path, "no node or library entry"))

    if umd is not None and entries.library is None and entries.browser is None:
        warnings.append(_unfed(ArtifactKind.UMD, umd, "no library or browser entry"))

    types = declared(manifest.types_path)
    if types is not None and not entries.typed_library:
        warnings.append(_unfed(ArtifactKind.TYPES, types, "no TypeScript library entry"))
        types = None
    elif types is None and entries.typed_library:
        warnings.append(MissingOutputError("types", "Missing `types` entry in package manifest!"))

    browser = declared(manifest.browser_path)
    if browser is not None and entries.browser is None:
        warnings.append(_unfed(ArtifactKind.BROWSER, browser, "no browser entry"))
        browser = None

    binary = None
    if entries.binary is not None:
        binary = root / output_binary if output_binary else declared(manifest.bin_path)
        if binary is None:
            warnings.append(
                MissingOutputError("binary", "Binary entry given but no `bin` path declared in package manifest!")
            )

    matrix = OutputMatrix(main=main, module=module, umd=umd, types=types, browser=browser, binary=binary)
    return OutputMatrixResult(matrix=matrix, warnings=tuple(warnings))


def _folder_matrix(entries: EntrySet, folder: Path, root: Path, output_binary: Optional[Path]) -> OutputMatrix:
    names = dict(FOLDER_NAMES)
    if entries.node is not None:
        names.update(NODE_FOLDER_NAMES)

    binary = None
    if entries.binary is not None:
        binary = root / output_binary if output_binary else folder / names[ArtifactKind.BINARY]

    return OutputMatrix(
        main=folder / names[ArtifactKind.MAIN],
        module=folder / names[ArtifactKind.MODULE],
        umd=folder / names[ArtifactKind.UMD],
        types=folder / names[ArtifactKind.TYPES] if entries.typed_library else None,
        browser=folder / names[ArtifactKind.BROWSER] if entries.browser is not None else None,
        binary=binary,
    )


def _unfed(kind: ArtifactKind, path: Path, reason: str) -> MissingOutputError:
    return MissingOutputError(kind.value, f"Manifest declares `{kind.value}` ({path}) but {reason} resolves to build it")
