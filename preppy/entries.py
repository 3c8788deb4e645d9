"""Entry point resolution from CLI overrides and source conventions."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Sequence

from .errors import MissingFileError
from .models import CliFlags, EntrySet

logger = logging.getLogger(__name__)

FileProbe = Callable[[Path], bool]

SOURCE_EXTENSIONS: Sequence[str] = (".js", ".ts", ".jsx", ".tsx")

NODE_CANDIDATES: Sequence[str] = ("src/node/index", "src/node")
LIBRARY_CANDIDATES: Sequence[str] = ("src/index",)


def resolve_entries(flags: CliFlags, root: Path, probe: FileProbe = Path.is_file) -> EntrySet:
    """Resolve the ``node``, ``library``, ``browser`` and ``binary`` entries for ``root``."""

    node = _override(flags.input_node, root, probe, "node") or _lookup(NODE_CANDIDATES, root, probe)
    library = _override(flags.input_library, root, probe, "library") or _lookup(
        LIBRARY_CANDIDATES, root, probe
    )
    browser = _override(flags.input_browser, root, probe, "browser")
    binary = _override(flags.input_binary, root, probe, "binary")

    if node is not None and library is not None:
        logger.debug("Node entry %s takes precedence over library entry %s", node, library)
        library = None

    return EntrySet(node=node, library=library, browser=browser, binary=binary)


def _override(value: Optional[Path], root: Path, probe: FileProbe, role: str) -> Optional[Path]:
    if value is None:
        return None
    path = root / value
    if not probe(path):
        raise MissingFileError(path, role)
    return path


def _lookup(candidates: Sequence[str], root: Path, probe: FileProbe) -> Optional[Path]:
    for stem in candidates:
        for extension in SOURCE_EXTENSIONS:
            path = root / f"{stem}{extension}"
            if probe(path):
                return path
    return None
