"""Manifest discovery and loading."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Sequence

import yaml
from pydantic import ValidationError

from .errors import ManifestError
from .schemas.manifest import PackageManifest

logger = logging.getLogger(__name__)

MANIFEST_NAMES: Sequence[str] = ("package.json", "package.yaml", "package.yml")

_LOADERS: Dict[str, Callable[[str], Any]] = {
    ".json": json.loads,
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
}


def find_manifest(root: Path) -> Path:
    """Return the manifest file for ``root``. JSON wins over YAML."""

    for name in MANIFEST_NAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    raise ManifestError(f"No package manifest found in {root} (looked for {', '.join(MANIFEST_NAMES)})")


def load_manifest(root: Path) -> PackageManifest:
    """Locate, parse and validate the manifest of the project at ``root``."""

    path = find_manifest(root)
    logger.debug("Reading manifest %s", path)
    try:
        payload = _LOADERS[path.suffix](path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ManifestError(f"Unable to parse {path.name}: {exc}") from exc

    if not isinstance(payload, Mapping):
        raise ManifestError(f"{path.name} must contain a mapping at the root")
    return parse_manifest(payload, source=path)


def parse_manifest(payload: Mapping[str, Any], *, source: Path | None = None) -> PackageManifest:
    try:
        return PackageManifest.model_validate(dict(payload))
    except ValidationError as exc:
        label = source.name if source else "manifest"
        raise ManifestError(f"Invalid {label}: {exc}") from exc


def get_banner(manifest: PackageManifest) -> str:
    """Return the artifact banner comment. Depends only on manifest content."""

    author = manifest.author_name
    suffix = f" by {author}" if author else ""
    return f"/*! {manifest.name} v{manifest.version}{suffix} */"
