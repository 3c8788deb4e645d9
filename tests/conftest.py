from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Dict, Sequence

import pytest


@pytest.fixture
def project(tmp_path: Path) -> Callable[..., Path]:
    """Create a project tree with a ``package.json`` and the given source files."""

    def _create(manifest: Dict[str, object], files: Sequence[str] = ()) -> Path:
        (tmp_path / "package.json").write_text(json.dumps(manifest), encoding="utf-8")
        for name in files:
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("export default 1\n", encoding="utf-8")
        return tmp_path

    return _create
