"""Command-line entry point."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Mapping, Optional, Sequence

from . import __version__
from .bundler.base import Bundler
from .bundler.esbuild import EsbuildBundler
from .config import load_settings
from .errors import BundlerNotFoundError, ManifestError, MissingFileError
from .manifest import load_manifest
from .models import CliFlags, EntrySet
from .orchestrator import Orchestrator
from .planner import prepare_build
from .reporting import ConsoleReporter
from .typedefs import TscTypeExtractor, TypeExtractor

logger = logging.getLogger("preppy")


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    bundler: Optional[Bundler] = None,
    type_extractor: Optional[TypeExtractor] = None,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(verbose=args.verbose, quiet=args.quiet)

    root = _resolve_workspace(args.root)
    flags = _flags_from_args(args)
    logger.debug("Flags: %s", flags)

    try:
        manifest = load_manifest(root)
        prepared = prepare_build(flags, manifest, root)
    except (ManifestError, MissingFileError) as exc:
        logger.error("Error while building: %s", exc)
        return 1

    for warning in prepared.warnings:
        logger.warning("%s", warning)

    if flags.dry_run:
        _print_json(prepared.to_dict())
        return 0

    _log_entries(prepared.entries)
    settings = load_settings(root)
    orchestrator = Orchestrator(
        bundler=bundler or EsbuildBundler(settings.esbuild, root=root),
        manifest=manifest,
        reporter=ConsoleReporter(manifest, root=root, quiet=flags.quiet, ci=settings.ci),
        type_extractor=type_extractor or TscTypeExtractor(settings.tsc, root=root),
        sourcemap=flags.sourcemap,
        verbose=flags.verbose,
    )
    try:
        result = orchestrator.run(prepared.plan, prepared.warnings)
    except BundlerNotFoundError as exc:
        logger.error("%s", exc)
        return 1
    return result.exit_code


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="preppy",
        description="Bundle a JavaScript/TypeScript project into the artifacts declared in package.json.",
    )
    parser.add_argument("--input-node", help="Entry file for a NodeJS program.")
    parser.add_argument("--input-lib", dest="input_library", help="Entry file for a publishable library.")
    parser.add_argument("--input-browser", help="Entry file for a dedicated browser bundle.")
    parser.add_argument("--input-binary", "--input-cli", dest="input_binary", help="Entry file for a CLI executable.")
    parser.add_argument("--output-folder", help="Write conventionally named artifacts into this folder.")
    parser.add_argument("--output-binary", help="Destination of the CLI executable.")
    parser.add_argument("--root", help="Project root containing package.json (default: cwd).")
    parser.add_argument("--verbose", action="store_true", help="Log debug output.")
    parser.add_argument("--quiet", action="store_true", help="Only log warnings and errors.")
    parser.add_argument("--sourcemap", action="store_true", help="Emit source maps next to each artifact.")
    parser.add_argument("--dry-run", action="store_true", help="Print the build plan as JSON and exit.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _flags_from_args(args: argparse.Namespace) -> CliFlags:
    def path(value: Optional[str]) -> Optional[Path]:
        return Path(value) if value else None

    return CliFlags(
        verbose=args.verbose,
        quiet=args.quiet,
        sourcemap=args.sourcemap,
        dry_run=args.dry_run,
        input_node=path(args.input_node),
        input_library=path(args.input_library),
        input_browser=path(args.input_browser),
        input_binary=path(args.input_binary),
        output_folder=path(args.output_folder),
        output_binary=path(args.output_binary),
    )


def _configure_logging(*, verbose: bool, quiet: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(format="%(message)s", stream=sys.stderr)
    logger.setLevel(level)


def _resolve_workspace(value: Optional[str]) -> Path:
    return Path(value).resolve() if value else Path.cwd()


def _log_entries(entries: EntrySet) -> None:
    for label, path in (
        ("NodeJS", entries.node),
        ("Library", entries.library),
        ("Browser", entries.browser),
        ("Binary", entries.binary),
    ):
        if path is not None:
            logger.info(">>> %s Entry: %s", label, path)


def _print_json(payload: Mapping[str, object]) -> None:
    print(json.dumps(payload, indent=2, default=str))
