"""Type declaration extraction through the TypeScript compiler."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol

from .errors import TypeExtractionFailure

logger = logging.getLogger(__name__)


class TypeExtractor(Protocol):
    def extract(self, source: Path, destination: Path, verbose: bool = False) -> None:  # pragma: no cover - interface
        ...


class TscTypeExtractor:
    """Runs ``tsc`` in declaration-only mode for one library source."""

    def __init__(self, executable: Optional[str], *, root: Path) -> None:
        self.executable = executable
        self.root = root

    def command(self, source: Path, destination: Path, verbose: bool = False) -> List[str]:
        cmd = [
            self.executable or "tsc",
            str(source),
            "--declaration",
            "--emitDeclarationOnly",
            "--declarationDir",
            str(destination),
            "--jsx",
            "react",
            "--esModuleInterop",
            "--allowSyntheticDefaultImports",
            "--skipLibCheck",
        ]
        if verbose:
            cmd.append("--listEmittedFiles")
        return cmd

    def extract(self, source: Path, destination: Path, verbose: bool = False) -> None:
        if not self.executable:
            raise TypeExtractionFailure("TypeScript compiler (tsc) not found. Install typescript or set PREPPY_TSC.")

        cmd = self.command(source, destination, verbose)
        try:
            proc = subprocess.run(cmd, cwd=str(self.root), capture_output=True, text=True, check=False)
        except FileNotFoundError as exc:
            raise TypeExtractionFailure(f"TypeScript compiler not found: {self.executable}") from exc

        if verbose and proc.stdout:
            for line in proc.stdout.splitlines():
                logger.debug("  %s", line)
        if proc.returncode != 0:
            output = (proc.stdout + proc.stderr).strip()
            raise TypeExtractionFailure(f"tsc exited with code {proc.returncode}: {output}")
