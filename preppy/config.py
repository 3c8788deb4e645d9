"""Environment-driven settings."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

ESBUILD_ENV = "PREPPY_ESBUILD"
TSC_ENV = "PREPPY_TSC"

_FALSY = {"", "0", "false", "no", "off"}


@dataclass(frozen=True, slots=True)
class Settings:
    root: Path
    esbuild: Optional[str]
    tsc: Optional[str]
    ci: bool = False


def locate_tool(name: str, root: Path, env_var: str, environ: Mapping[str, str]) -> Optional[str]:
    """Find ``name``: explicit env var, then ``node_modules/.bin``, then ``PATH``."""

    explicit = environ.get(env_var)
    if explicit:
        return explicit
    local = root / "node_modules" / ".bin" / name
    if local.is_file():
        return str(local)
    return shutil.which(name)


def is_ci(environ: Mapping[str, str]) -> bool:
    for key in ("CI", "CONTINUOUS_INTEGRATION", "BUILD_NUMBER"):
        value = environ.get(key)
        if value is not None and value.strip().lower() not in _FALSY:
            return True
    return False


def load_settings(root: Path, environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    return Settings(
        root=root,
        esbuild=locate_tool("esbuild", root, ESBUILD_ENV, env),
        tsc=locate_tool("tsc", root, TSC_ENV, env),
        ci=is_ci(env),
    )
