"""YAML module ingestion for bundlers that only understand JSON data modules.

The analysis pass reads ``.yaml``/``.yml`` imports as plain text so they show up in
the module graph. Before the write pass the graph's modules are mirrored into a
staging tree in which every YAML module is replaced by its JSON rendering, and the
bundler loads those files with its JSON loader.
"""

from __future__ import annotations

import json
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Iterable

import yaml

from ..errors import BundleFailure

YAML_EXTENSIONS: FrozenSet[str] = frozenset({".yaml", ".yml"})

# Project files the bundler consults while resolving and transpiling.
PROJECT_FILES = ("package.json", "tsconfig.json", "jsconfig.json")


@dataclass(frozen=True, slots=True)
class StagedSources:
    root: Path
    entry: Path


def is_yaml_module(path: Path) -> bool:
    return path.suffix.lower() in YAML_EXTENSIONS


def yaml_to_json(path: Path) -> str:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise BundleFailure(f"Invalid YAML module {path}: {exc}", input_path=path) from exc
    # Timestamps and other non-JSON scalars are emitted as strings.
    return json.dumps(data, default=str, ensure_ascii=False)


def stage_sources(modules: Iterable[Path], root: Path, entry: Path, staging: Path) -> StagedSources:
    """Mirror ``modules`` under ``staging`` with YAML modules rewritten as JSON."""

    modules = tuple(modules)
    base = Path(os.path.commonpath([str(root), str(entry), *(str(module) for module in modules)]))

    def staged(path: Path) -> Path:
        return staging / path.relative_to(base)

    for module in modules:
        destination = staged(module)
        destination.parent.mkdir(parents=True, exist_ok=True)
        if is_yaml_module(module):
            destination.write_text(yaml_to_json(module), encoding="utf-8")
        else:
            shutil.copy2(module, destination)

    for name in PROJECT_FILES:
        source = root / name
        if source.is_file() and not staged(source).exists():
            staged(source).parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, staged(source))

    return StagedSources(root=staged(root), entry=staged(entry))
